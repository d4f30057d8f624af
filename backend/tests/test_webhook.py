"""Testes para o webhook de pagamento da Cakto."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from mercadopro.config import settings
from mercadopro.errors import UpstreamFailure
from mercadopro.models import Subscription
from mercadopro.schemas import PlanType
from mercadopro.services.payment_webhook import (
    activate_subscription,
    extract_email,
    extract_status,
    infer_plan_type,
    is_paid,
)


def paid_payload(email="maria@example.com", offer="Plano Mensal", **data):
    return {"data": {"status": "paid", "customer": {"email": email}, "offer": {"name": offer}, **data}}


class TestExtraction:
    """Testes para leitura dos campos do payload."""

    def test_email_order(self):
        """data.customer.email tem prioridade sobre os demais."""
        payload = {
            "email": "raiz@example.com",
            "customer": {"email": "cliente@example.com"},
            "data": {"customer": {"email": "dados@example.com"}},
        }
        assert extract_email(payload) == "dados@example.com"

    def test_email_fallbacks(self):
        assert extract_email({"data": {"payer": {"email": "pagador@example.com"}}}) == "pagador@example.com"
        assert extract_email({"payer": {"email": "p@example.com"}}) == "p@example.com"
        assert extract_email({"email": "r@example.com"}) == "r@example.com"
        assert extract_email({"data": "texto"}) is None

    def test_status_fallbacks(self):
        assert extract_status({"data": {"status": "approved"}}) == "approved"
        assert extract_status({"state": "paid"}) == "paid"
        assert extract_status({"current_status": "refused"}) == "refused"
        assert extract_status({}) is None

    @pytest.mark.parametrize("status", ["paid", "APPROVED", "Completed", "authorized", "succeeded"])
    def test_paid_statuses(self, status):
        assert is_paid(status)

    @pytest.mark.parametrize("status", ["pending", "refused", "", None])
    def test_unpaid_statuses(self, status):
        assert not is_paid(status)


class TestInferPlanType:
    """Testes para identificação do plano."""

    def test_default_monthly(self):
        assert infer_plan_type(paid_payload(offer="Plano Básico")) == PlanType.MONTHLY

    def test_quarterly_keyword(self):
        assert infer_plan_type(paid_payload(offer="Plano Trimestral")) == PlanType.QUARTERLY

    def test_yearly_keyword_in_product(self):
        assert infer_plan_type({"data": {"product": {"name": "MercadoPro Anual"}}}) == PlanType.YEARLY

    def test_quarterly_checked_before_yearly(self):
        """Texto com as duas palavras resulta em trimestral."""
        payload = {"product_name": "Plano anual", "description": "cobrança quarterly"}
        assert infer_plan_type(payload) == PlanType.QUARTERLY

    def test_interval_count(self):
        three = {"data": {"plan": {"interval": "month", "interval_count": 3}}}
        twelve = {"data": {"plan": {"interval": "month", "interval_count": 12}}}
        assert infer_plan_type(three) == PlanType.QUARTERLY
        assert infer_plan_type(twelve) == PlanType.YEARLY

    def test_plan_days(self):
        assert [p.days for p in PlanType] == [30, 90, 365]


class TestActivateSubscription:
    """Testes para gravação da assinatura."""

    def test_creates_row(self, db_session, user):
        now = datetime(2026, 5, 1, tzinfo=UTC)
        sub = activate_subscription(db_session, user, PlanType.QUARTERLY, now)
        assert sub.status == "active"
        assert sub.plan_type == "quarterly"
        assert sub.expires_at.replace(tzinfo=UTC) == now + timedelta(days=90)

    def test_upsert_extends_from_now(self, db_session, user):
        """Renovação reescreve a linha existente contando a partir de agora."""
        first = datetime(2026, 5, 1, tzinfo=UTC)
        activate_subscription(db_session, user, PlanType.YEARLY, first)

        renewal = first + timedelta(days=10)
        sub = activate_subscription(db_session, user, PlanType.MONTHLY, renewal)

        assert db_session.query(Subscription).filter_by(user_id=user.id).count() == 1
        assert sub.plan_type == "monthly"
        assert sub.expires_at.replace(tzinfo=UTC) == renewal + timedelta(days=30)

    def test_database_failure(self, db_session, user):
        with patch.object(db_session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("db down"))):
            with pytest.raises(UpstreamFailure):
                activate_subscription(db_session, user, PlanType.MONTHLY, datetime.now(UTC))


class TestCaktoEndpoint:
    """Testes para POST /webhooks/cakto."""

    def test_paid_activates_subscription(self, client, db_session, user):
        response = client.post("/webhooks/cakto", json=paid_payload(offer="Plano Trimestral"))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["plan_type"] == "quarterly"
        assert "expires_at" in data
        assert db_session.query(Subscription).filter_by(user_id=user.id, status="active").count() == 1

    def test_email_match_is_case_insensitive(self, client, user):
        response = client.post("/webhooks/cakto", json=paid_payload(email="MARIA@Example.com"))
        assert response.json()["success"] is True

    def test_missing_email(self, client):
        response = client.post("/webhooks/cakto", json={"data": {"status": "paid"}})
        assert response.status_code == 400

    def test_unpaid_status_ignored(self, client, db_session, user):
        payload = paid_payload()
        payload["data"]["status"] = "pending"

        response = client.post("/webhooks/cakto", json=payload)

        assert response.status_code == 200
        assert "success" not in response.json()
        assert db_session.query(Subscription).count() == 0

    def test_unknown_user_is_200(self, client):
        """E-mail desconhecido responde 200 para o gateway não reenviar."""
        response = client.post("/webhooks/cakto", json=paid_payload(email="ninguem@example.com"))
        assert response.status_code == 200
        assert response.json() == {"error": "User not found in system"}

    def test_invalid_json(self, client):
        response = client.post(
            "/webhooks/cakto", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_persistence_failure_is_500(self, client, user):
        with patch(
            "mercadopro.routers.webhooks.activate_subscription",
            side_effect=UpstreamFailure("Erro ao salvar assinatura"),
        ):
            response = client.post("/webhooks/cakto", json=paid_payload())
        assert response.status_code == 500

    def test_token_required_when_configured(self, client, user):
        with patch.object(settings, "webhook_token", "s3cr3t"):
            denied = client.post("/webhooks/cakto", json=paid_payload())
            by_query = client.post("/webhooks/cakto?token=s3cr3t", json=paid_payload())
            by_header = client.post(
                "/webhooks/cakto", json=paid_payload(), headers={"X-Webhook-Token": "s3cr3t"}
            )

        assert denied.status_code == 401
        assert by_query.status_code == 200
        assert by_header.status_code == 200
