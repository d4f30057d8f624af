"""Configuração de fixtures para testes."""

import os

# Precisa vir antes de importar o app: engine e limiter leem as configurações no import
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("WEBHOOK_TOKEN", "")
os.environ.setdefault("TRIAL_STORE", "database")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mercadopro.database import Base, get_db
from mercadopro.main import app
from mercadopro.models import Product, User
from mercadopro.services.auth import create_access_token, hash_password


# Banco de dados em memória para testes
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Cria uma sessão de banco de dados para testes."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Cria um cliente de teste com banco de dados isolado."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    """Usuário dono da loja."""
    u = User(name="Maria Souza", email="maria@example.com", password_hash=hash_password("segredo123"))
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def other_user(db_session):
    """Segundo usuário, para testar isolamento entre lojas."""
    u = User(name="João Lima", email="joao@example.com", password_hash=hash_password("segredo123"))
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def auth_headers(user):
    """Header Authorization com token do ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id, session_id='sessao-teste')}"}


@pytest.fixture
def make_product(db_session, user):
    """Fábrica de produtos do ``user``."""

    def _make(**overrides):
        owner_id = overrides.pop("user_id", user.id)
        data = {
            "name": "Leite Integral",
            "category": "laticinios",
            "cost_price": 4.0,
            "sale_price": 6.0,
            "stock_quantity": 10,
            "min_stock": 2,
        }
        data.update(overrides)
        product = Product(user_id=owner_id, **data)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make
