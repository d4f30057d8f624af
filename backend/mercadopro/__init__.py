"""MercadoPRO - gestão de estoque, vendas e despesas para pequenos comércios."""

__version__ = "1.0.0"
