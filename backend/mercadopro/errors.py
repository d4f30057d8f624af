"""Exceções de domínio.

Os serviços levantam estas exceções; o handler registrado em ``main`` as
converte em respostas JSON ``{"detail": ...}`` com o status correspondente.
"""


class AppError(Exception):
    """Erro base da aplicação."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(AppError):
    """Entrada com formato ou faixa inválida."""

    status_code = 400


class QuickSaleParseError(ValidationError):
    """Texto de venda rápida que não pôde ser interpretado."""


class NotFound(AppError):
    """Registro referenciado não existe."""

    status_code = 404


class ProductNotFound(NotFound):
    """Nenhum produto corresponde à busca."""

    def __init__(self, detail: str = "Produto não encontrado"):
        super().__init__(detail)


class InsufficientStock(AppError):
    """Venda maior que o estoque disponível."""

    status_code = 409

    def __init__(self, available: int):
        super().__init__(f"Estoque insuficiente. Disponível: {available}")
        self.available = available

    def to_dict(self) -> dict:
        return {"detail": self.detail, "available": self.available}


class AuthRequired(AppError):
    """Requisição sem sessão válida."""

    status_code = 401


class UpstreamFailure(AppError):
    """Falha ao acessar o banco ou outro serviço externo."""

    status_code = 502
