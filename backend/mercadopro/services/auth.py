"""Hash de senha, emissão de JWT e dependência de usuário autenticado."""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import AuthRequired
from ..models import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    """Gera hash bcrypt da senha."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verifica senha contra hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(user_id: int, session_id: str | None = None) -> str:
    """Cria JWT de acesso. ``sid`` identifica a sessão de login."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "sid": session_id or secrets.token_hex(8),
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decodifica e valida JWT."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthRequired("Token expirado")
    except jwt.InvalidTokenError:
        raise AuthRequired("Token inválido")
    if payload.get("type") != TOKEN_TYPE:
        raise AuthRequired("Token inválido")
    return payload


@dataclass(frozen=True)
class AuthContext:
    user: User
    session_id: str


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _load_context(db: Session, token: str) -> AuthContext:
    payload = decode_token(token)
    user = db.get(User, int(payload["sub"]))
    if not user or not user.is_active:
        raise AuthRequired("Usuário não encontrado ou inativo")
    return AuthContext(user=user, session_id=str(payload.get("sid") or ""))


def get_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    """Usuário e sessão atuais a partir do header Authorization."""
    token = _bearer_token(request)
    if not token:
        raise AuthRequired("Token não fornecido")
    return _load_context(db, token)


def get_optional_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext | None:
    """Como ``get_auth_context``, mas retorna None sem token ou com token inválido."""
    token = _bearer_token(request)
    if not token:
        return None
    try:
        return _load_context(db, token)
    except AuthRequired:
        return None


def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    return context.user
