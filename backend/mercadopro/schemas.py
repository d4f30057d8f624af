"""Schemas Pydantic para validação e serialização."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# === Enums ===


class ProductCategory(str, Enum):
    """Categorias fixas de produto."""

    BEBIDAS = "bebidas"
    LATICINIOS = "laticinios"
    CARNES = "carnes"
    FRUTAS_VERDURAS = "frutas_verduras"
    PADARIA = "padaria"
    LIMPEZA = "limpeza"
    HIGIENE = "higiene"
    CONGELADOS = "congelados"
    GRAOS_CEREAIS = "graos_cereais"
    ENLATADOS = "enlatados"
    OUTROS = "outros"


CATEGORY_LABELS: dict[str, str] = {
    "bebidas": "Bebidas",
    "laticinios": "Laticínios",
    "carnes": "Carnes",
    "frutas_verduras": "Frutas e Verduras",
    "padaria": "Padaria",
    "limpeza": "Limpeza",
    "higiene": "Higiene",
    "congelados": "Congelados",
    "graos_cereais": "Grãos e Cereais",
    "enlatados": "Enlatados",
    "outros": "Outros",
}


def category_label(category: str) -> str:
    """Rótulo de exibição; categorias personalizadas usam o próprio nome."""
    return CATEGORY_LABELS.get(category, category)


class PaymentMethod(str, Enum):
    """Formas de pagamento aceitas."""

    DINHEIRO = "dinheiro"
    PIX = "pix"
    CREDITO = "credito"
    DEBITO = "debito"


PAYMENT_LABELS: dict[str, str] = {
    "dinheiro": "Dinheiro",
    "pix": "PIX",
    "credito": "Crédito",
    "debito": "Débito",
}


class PlanType(str, Enum):
    """Planos de assinatura e sua duração em dias."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def days(self) -> int:
        return {"monthly": 30, "quarterly": 90, "yearly": 365}[self.value]


class SubscriptionStatus(str, Enum):
    """Status de acesso derivado da assinatura."""

    LOADING = "loading"
    ACTIVE = "active"
    EXPIRED = "expired"
    NONE = "none"


class ChartPeriod(str, Enum):
    """Granularidade do gráfico de receita."""

    TODAY = "today"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class GateAction(str, Enum):
    """Decisão de acesso a uma rota."""

    ALLOW = "allow"
    REDIRECT = "redirect"
    WAIT = "wait"


# === Auth ===


class UserRegister(BaseModel):
    """Schema para cadastro de usuário."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    """Schema para login."""

    email: EmailStr
    password: str


class UserOut(BaseModel):
    """Schema de saída para usuário."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    """Schema de resposta com token de acesso."""

    access_token: str
    token_type: str = "bearer"
    user: UserOut


# === Catálogo ===


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("Nome da categoria não pode ser vazio")
        return v


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime | None = None


class CategoryListOut(BaseModel):
    """Categorias fixas (chave -> rótulo) e personalizadas."""

    builtin: dict[str, str]
    custom: list[CategoryOut]


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None


class SupplierOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: str | None = None
    email: str | None = None


class ProductBase(BaseModel):
    """Schema base para produto."""

    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(default=ProductCategory.OUTROS.value, max_length=100)
    cost_price: float = Field(default=0.0, ge=0)
    sale_price: float = Field(default=0.0, ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    supplier_id: int | None = None
    entry_date: date | None = None
    expiry_date: date | None = None
    notes: str | None = None


class ProductCreate(ProductBase):
    """Schema para criar produto."""


class ProductUpdate(BaseModel):
    """Schema para atualizar produto. Apenas campos enviados são alterados."""

    name: str | None = Field(None, min_length=1, max_length=255)
    category: str | None = Field(None, max_length=100)
    cost_price: float | None = Field(None, ge=0)
    sale_price: float | None = Field(None, ge=0)
    stock_quantity: int | None = Field(None, ge=0)
    min_stock: int | None = Field(None, ge=0)
    supplier_id: int | None = None
    entry_date: date | None = None
    expiry_date: date | None = None
    notes: str | None = None


class ProductOut(ProductBase):
    """Schema de saída para produto."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    category_label: str = ""
    is_low_stock: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductStatsOut(BaseModel):
    """Resumo de vendas de um produto."""

    product_id: int
    total_sold: int
    total_profit: float
    markup: float


# === Vendas ===


class SaleCreate(BaseModel):
    """Schema para registrar venda."""

    product_id: int
    quantity: int = Field(..., ge=1)
    payment_method: PaymentMethod = PaymentMethod.DINHEIRO


class SaleUpdate(BaseModel):
    """Schema para alterar a quantidade de uma venda."""

    quantity: int = Field(..., ge=1)


class SaleOut(BaseModel):
    """Schema de saída para venda."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int | None
    product_name: str
    quantity: int
    unit_price: float
    cost_price: float
    total_price: float
    profit: float
    payment_method: PaymentMethod
    sale_date: datetime


class QuickSaleRequest(BaseModel):
    """Texto livre da venda rápida, ex: "Leite - 2 pix"."""

    text: str = Field(..., min_length=1, max_length=255)


class QuickSaleOut(BaseModel):
    product_query: str
    quantity: int
    payment_method: PaymentMethod
    sale: SaleOut
    message: str


# === Despesas ===


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., ge=0)
    category: str = Field(default="outros", max_length=100)
    expense_date: date


class ExpenseOut(ExpenseCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


# === Dashboard ===


class DashboardMetricsOut(BaseModel):
    """Métricas do mês corrente."""

    total_revenue: float
    total_profit: float
    total_expenses: float
    profit_margin: float
    total_products_sold: int
    average_ticket: float
    low_stock_count: int
    expiring_count: int


class ChartPoint(BaseModel):
    """Ponto do gráfico de receita, lucro e custos."""

    label: str
    revenue: float
    profit: float
    costs: float


class BreakdownEntry(BaseModel):
    total: float
    profit: float
    count: int


class TopProductOut(BaseModel):
    id: int | None
    name: str
    quantity: int
    profit: float


class CalendarDayOut(BaseModel):
    date: date
    revenue: float
    profit: float
    count: int


class AlertsOut(BaseModel):
    low_stock: list[ProductOut]
    expiring: list[ProductOut]


# === Assinatura ===


class SubscriptionStatusOut(BaseModel):
    status: SubscriptionStatus
    days_remaining: int | None = None
    expires_at: datetime | None = None
    plan_type: str | None = None
    show_renewal_banner: bool = False


class TrialStatusOut(BaseModel):
    started_at: datetime
    time_left_seconds: int
    is_expired: bool


class AccessDecisionOut(BaseModel):
    action: GateAction
    redirect_to: str | None = None
    status: SubscriptionStatus
    show_trial_notice: bool = False
    trial_time_left_seconds: int | None = None
    show_renewal_banner: bool = False


# === Health ===


class HealthResponse(BaseModel):
    """Response do health check."""

    status: str
    db: bool
    redis: bool | None = None
