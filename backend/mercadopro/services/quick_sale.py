"""Interpretação do texto livre da venda rápida.

Formatos aceitos, com forma de pagamento opcional em qualquer posição::

    "Leite - 2 pix"      -> leite, 2, pix
    "Coca-Cola 3"        -> coca-cola, 3, dinheiro
    "Pão francês"        -> pão francês, 1, dinheiro

É uma heurística: nomes de produto com números ("Água 500ml 2") podem ser
interpretados de forma errada.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import ProductNotFound, QuickSaleParseError
from ..models import Product
from ..schemas import PaymentMethod

# Ordem de prioridade quando há mais de uma forma de pagamento no texto
PAYMENT_KEYWORDS: list[tuple[str, PaymentMethod]] = [
    ("pix", PaymentMethod.PIX),
    ("crédito", PaymentMethod.CREDITO),
    ("credito", PaymentMethod.CREDITO),
    ("débito", PaymentMethod.DEBITO),
    ("debito", PaymentMethod.DEBITO),
    ("dinheiro", PaymentMethod.DINHEIRO),
]

NUMBER_PATTERN = re.compile(r"(?<!\w)\d+(?!\w)")
INTEGER_PATTERN = re.compile(r"^\d+$")


@dataclass(frozen=True)
class QuickSaleInput:
    product_query: str
    quantity: int
    payment_method: PaymentMethod


def _extract_payment(text: str) -> tuple[PaymentMethod, str]:
    lowered = text.lower()
    for keyword, method in PAYMENT_KEYWORDS:
        pos = lowered.find(keyword)
        if pos >= 0:
            return method, text[:pos] + " " + text[pos + len(keyword):]
    return PaymentMethod.DINHEIRO, text


def _extract_quantity(text: str) -> tuple[str, int]:
    if "-" in text:
        head, tail = text.split("-", 1)
        tail = tail.strip()
        if INTEGER_PATTERN.match(tail) and int(tail) > 0:
            return head, int(tail)

    # Sem "nome - qtd": o hífen fica no nome e vale o último número solto
    matches = list(NUMBER_PATTERN.finditer(text))
    if not matches:
        return text, 1
    last = matches[-1]
    quantity = int(last.group(0))
    if quantity <= 0:
        raise QuickSaleParseError("Quantidade inválida")
    return text[: last.start()] + " " + text[last.end():], quantity


def parse_quick_sale(text: str) -> QuickSaleInput:
    """Extrai nome, quantidade e forma de pagamento do texto livre."""
    if not text or not text.strip():
        raise QuickSaleParseError("Digite o nome do produto")

    method, remaining = _extract_payment(text.strip())
    name, quantity = _extract_quantity(remaining)

    query = " ".join(name.split()).lower()
    if not query:
        raise QuickSaleParseError("Nome do produto inválido")
    return QuickSaleInput(product_query=query, quantity=quantity, payment_method=method)


def match_product(products: Iterable[Product], query: str) -> Product:
    """Primeiro produto cujo nome contém ``query`` (sem diferenciar maiúsculas)."""
    query = query.lower()
    for product in products:
        if query in product.name.lower():
            return product
    raise ProductNotFound("Produto não encontrado. Verifique o nome.")
