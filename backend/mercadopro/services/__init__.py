"""Serviços de domínio: consultas, vendas, métricas, acesso e webhook."""
