"""Models SQLAlchemy para o MercadoPRO."""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .schemas import category_label


def utc_now() -> datetime:
    """Retorna datetime atual em UTC."""
    return datetime.now(UTC)


# =============================================================================
# USUÁRIOS
# =============================================================================


class User(Base):
    """Dono da loja. Todos os demais registros pertencem a um usuário."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
    last_login = Column(DateTime(timezone=True), nullable=True)

    products = relationship("Product", back_populates="user", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")


# =============================================================================
# CATÁLOGO
# =============================================================================


class Category(Base):
    """Categoria personalizada criada pelo usuário (além das categorias fixas)."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
    )


class Supplier(Base):
    """Fornecedor de produtos."""

    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    products = relationship("Product", back_populates="supplier")


class Product(Base):
    """Produto em estoque."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=False, default="outros")  # chave fixa ou nome de Category

    cost_price = Column(Float, nullable=False, default=0.0)
    sale_price = Column(Float, nullable=False, default=0.0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)

    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    entry_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    user = relationship("User", back_populates="products")
    supplier = relationship("Supplier", back_populates="products")
    sales = relationship("Sale", back_populates="product")

    __table_args__ = (
        Index("ix_products_user_name", "user_id", "name"),
    )

    @property
    def category_label(self) -> str:
        return category_label(self.category)

    @property
    def is_low_stock(self) -> bool:
        """Estoque no limite mínimo também conta como baixo."""
        return self.stock_quantity <= self.min_stock

    def __repr__(self):
        return f"<Product {self.name} - R${self.sale_price:.2f} - Estoque: {self.stock_quantity}>"


# =============================================================================
# VENDAS E DESPESAS
# =============================================================================


class Sale(Base):
    """Venda de um produto. Preços são copiados do produto no momento da venda."""

    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Fica nulo quando o produto é removido
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    cost_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    profit = Column(Float, nullable=False)
    payment_method = Column(String(20), nullable=False, default="dinheiro")  # dinheiro|pix|credito|debito

    sale_date = Column(DateTime(timezone=True), default=utc_now, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    product = relationship("Product", back_populates="sales")

    __table_args__ = (
        Index("ix_sales_user_date", "user_id", "sale_date"),
    )

    @property
    def product_name(self) -> str:
        return self.product.name if self.product else "Produto removido"

    def __repr__(self):
        return f"<Sale {self.id} - {self.quantity}x - R${self.total_price:.2f} - {self.payment_method}>"


class Expense(Base):
    """Despesa avulsa; entra apenas no lucro agregado."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String(100), nullable=False, default="outros")
    expense_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "expense_date"),
    )


# =============================================================================
# ASSINATURA
# =============================================================================


class Subscription(Base):
    """Assinatura paga; gravada apenas pelo webhook de pagamento."""

    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_type = Column(String(20), nullable=False)  # monthly|quarterly|yearly
    status = Column(String(20), nullable=False, default="active", index=True)  # active|expired
    starts_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="subscriptions")

    __table_args__ = (
        Index("ix_user_subscriptions_user_expires", "user_id", "expires_at"),
    )


class ClientState(Base):
    """Armazenamento chave-valor por usuário (início do teste, avisos já exibidos)."""

    __tablename__ = "client_state"

    key = Column(String(255), primary_key=True)
    value = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
