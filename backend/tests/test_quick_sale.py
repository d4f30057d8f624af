"""Testes para o parser da venda rápida."""

import pytest

from mercadopro.errors import ProductNotFound, QuickSaleParseError
from mercadopro.models import Product
from mercadopro.schemas import PaymentMethod
from mercadopro.services.quick_sale import match_product, parse_quick_sale


class TestParseQuickSale:
    """Testes para extração de nome, quantidade e pagamento."""

    def test_name_dash_quantity_and_payment(self):
        """Formato "nome - qtd pagamento"."""
        parsed = parse_quick_sale("Leite - 2 pix")
        assert parsed.product_query == "leite"
        assert parsed.quantity == 2
        assert parsed.payment_method == PaymentMethod.PIX

    def test_hyphen_inside_name_is_kept(self):
        """Hífen sem número depois faz parte do nome."""
        parsed = parse_quick_sale("Coca-Cola 3 crédito")
        assert parsed.product_query == "coca-cola"
        assert parsed.quantity == 3
        assert parsed.payment_method == PaymentMethod.CREDITO

    def test_defaults(self):
        """Sem número e sem pagamento: 1 unidade em dinheiro."""
        parsed = parse_quick_sale("Pão Francês")
        assert parsed.product_query == "pão francês"
        assert parsed.quantity == 1
        assert parsed.payment_method == PaymentMethod.DINHEIRO

    def test_payment_without_accent(self):
        """Formas de pagamento sem acento são aceitas."""
        assert parse_quick_sale("Sabonete debito").payment_method == PaymentMethod.DEBITO
        assert parse_quick_sale("Sabonete credito").payment_method == PaymentMethod.CREDITO

    def test_payment_is_case_insensitive(self):
        """PIX em maiúsculas também é reconhecido."""
        parsed = parse_quick_sale("Leite PIX")
        assert parsed.payment_method == PaymentMethod.PIX
        assert parsed.product_query == "leite"

    def test_payment_priority(self):
        """Com duas formas no texto, vale a de maior prioridade (pix)."""
        parsed = parse_quick_sale("Café débito pix")
        assert parsed.payment_method == PaymentMethod.PIX

    def test_number_glued_to_word_is_part_of_name(self):
        """Números colados em letras ("500ml") não são quantidade."""
        parsed = parse_quick_sale("Água 500ml 2")
        assert parsed.product_query == "água 500ml"
        assert parsed.quantity == 2

    def test_last_number_wins(self):
        """Sem hífen, o último número solto é a quantidade."""
        parsed = parse_quick_sale("Pack 6 cervejas 4")
        assert parsed.quantity == 4
        assert parsed.product_query == "pack 6 cervejas"

    def test_extra_whitespace_collapsed(self):
        """Espaços repetidos são normalizados no nome."""
        parsed = parse_quick_sale("  Pão    de   queijo   - 5  ")
        assert parsed.product_query == "pão de queijo"
        assert parsed.quantity == 5

    def test_zero_quantity_rejected(self):
        """Quantidade zero é inválida."""
        with pytest.raises(QuickSaleParseError):
            parse_quick_sale("Arroz 0")

    def test_zero_after_dash_rejected(self):
        """Zero depois do hífen também é inválido."""
        with pytest.raises(QuickSaleParseError):
            parse_quick_sale("Arroz - 0")

    def test_empty_text_rejected(self):
        """Texto vazio é rejeitado."""
        with pytest.raises(QuickSaleParseError):
            parse_quick_sale("   ")

    def test_only_payment_rejected(self):
        """Só a forma de pagamento, sem nome, é rejeitado."""
        with pytest.raises(QuickSaleParseError):
            parse_quick_sale("pix")


class TestMatchProduct:
    """Testes para a busca do produto pelo nome digitado."""

    @pytest.fixture
    def products(self):
        return [
            Product(id=1, name="Leite Integral", sale_price=6.0, cost_price=4.0),
            Product(id=2, name="Leite Desnatado", sale_price=6.5, cost_price=4.2),
            Product(id=3, name="Coca-Cola 2L", sale_price=10.0, cost_price=7.0),
        ]

    def test_substring_match(self, products):
        """Busca por parte do nome, sem diferenciar maiúsculas."""
        assert match_product(products, "coca").id == 3

    def test_first_match_wins(self, products):
        """Com vários candidatos, vale o primeiro da lista."""
        assert match_product(products, "leite").id == 1

    def test_not_found(self, products):
        """Sem correspondência levanta ProductNotFound."""
        with pytest.raises(ProductNotFound):
            match_product(products, "feijão")
