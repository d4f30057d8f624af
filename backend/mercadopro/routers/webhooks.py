"""Router para notificações do gateway de pagamento (Cakto)."""

import json
import logging
import secrets

from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..config import settings
from ..database import DbSession
from ..errors import UpstreamFailure
from ..rate_limit import limiter
from ..services.payment_webhook import (
    activate_subscription,
    extract_email,
    extract_status,
    find_user_by_email,
    infer_plan_type,
    is_paid,
)
from ..time_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_token(token: str | None) -> None:
    if not settings.webhook_token:
        return
    if not token or not secrets.compare_digest(token, settings.webhook_token):
        raise HTTPException(status_code=401, detail="Token do webhook inválido")


@router.post("/cakto")
@limiter.limit("120/minute")
async def cakto_webhook(
    request: Request,
    db: DbSession,
    token: str | None = Query(None),
    x_webhook_token: str | None = Header(None),
):
    """
    Recebe notificação de pagamento e ativa a assinatura do usuário.

    Status não pago e e-mail desconhecido respondem 200 para o gateway não
    reenviar a notificação.
    """
    _check_token(token or x_webhook_token)

    try:
        payload = json.loads(await request.body() or b"{}")
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Payload inválido")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Payload inválido")

    email = extract_email(payload)
    status = extract_status(payload)
    logger.info(f"Webhook Cakto recebido: email={email} | status={status}")

    if not email:
        return JSONResponse(status_code=400, content={"error": "Email not found in payload"})

    if not is_paid(status):
        logger.warning(f"Webhook ignorado, status não pago: {status}")
        return {"message": "Status not paid, ignoring", "status": status}

    user = find_user_by_email(db, email)
    if user is None:
        logger.warning(f"Webhook para e-mail sem usuário: {email}")
        return {"error": "User not found in system"}

    plan = infer_plan_type(payload)
    try:
        subscription = activate_subscription(db, user, plan, utcnow())
    except UpstreamFailure as e:
        return JSONResponse(status_code=500, content={"error": e.detail})

    return {
        "success": True,
        "plan_type": plan.value,
        "expires_at": subscription.expires_at.isoformat(),
    }
