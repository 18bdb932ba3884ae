# payments/services/gateway.py

"""
PAYMENT GATEWAY (CAPABILITY INTERFACE)

The orchestrator only ever talks to a PaymentGateway:

- ensure_customer(email, name, existing_id)   -> customer id
- create_intent(amount, currency, ...)        -> IntentResult
- cancel_intent(intent_id)
- refund(payment_intent_id, amount, ...)      -> RefundResult
- verify_webhook_signature(payload, header)   -> event dict

StripeGateway is the production implementation (StripeClient, bounded
HTTP timeout, idempotency keys). The class actually used is configured by
settings.PAYMENTS["GATEWAY"], so tests swap in an in-memory fake.

Every provider failure leaves this module as PaymentProviderError (502,
retryable) or WebhookSignatureError (400). Nothing here writes to the DB.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string
from stripe import StripeClient

from backend.api_errors import DomainValidationError, ExternalServiceError

logger = logging.getLogger(__name__)


# ============================================================
# ERRORS
# ============================================================


class PaymentProviderError(ExternalServiceError):
    default_message = "Payment provider is unavailable; please retry"

    def __init__(self, message: str | None = None, *, provider_code: str | None = None):
        super().__init__(message)
        self.provider_code = provider_code


class WebhookSignatureError(DomainValidationError):
    default_message = "Invalid signature"


# ============================================================
# RESULTS
# ============================================================


@dataclass(frozen=True)
class IntentResult:
    id: str
    client_secret: str


@dataclass(frozen=True)
class RefundResult:
    id: str
    status: str
    amount: int


# ============================================================
# INTERFACE
# ============================================================


class PaymentGateway(ABC):
    @abstractmethod
    def ensure_customer(self, *, email: str, name: str, existing_id: str = "") -> str:
        raise NotImplementedError

    @abstractmethod
    def create_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
        customer_id: Optional[str] = None,
        destination_account: Optional[str] = None,
        application_fee: Optional[int] = None,
    ) -> IntentResult:
        raise NotImplementedError

    @abstractmethod
    def cancel_intent(self, intent_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def refund(
        self,
        *,
        payment_intent_id: str,
        amount: int,
        idempotency_key: str,
        metadata: Optional[dict] = None,
    ) -> RefundResult:
        raise NotImplementedError

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict:
        raise NotImplementedError


# ============================================================
# STRIPE
# ============================================================


class StripeGateway(PaymentGateway):
    """
    Stripe implementation (v8+ StripeClient).

    - every call has a bounded timeout (STRIPE API_TIMEOUT_SECONDS)
    - every money-moving call carries an idempotency key, so a retried
      request can never create a second intent or refund
    """

    def __init__(self, config: dict | None = None):
        cfg = config if config is not None else settings.PAYMENTS["STRIPE"]
        self._secret_key = cfg.get("SECRET_KEY") or ""
        self._webhook_secret = cfg.get("WEBHOOK_SECRET") or ""
        self._timeout = int(cfg.get("API_TIMEOUT_SECONDS") or 20)
        self._max_retries = int(cfg.get("MAX_NETWORK_RETRIES") or 0)
        self._client: StripeClient | None = None

    def _get_client(self) -> StripeClient:
        if self._client is None:
            if not self._secret_key:
                raise ImproperlyConfigured("STRIPE_SECRET_KEY is not configured")
            self._client = StripeClient(
                self._secret_key,
                http_client=stripe.RequestsClient(timeout=self._timeout),
                max_network_retries=self._max_retries,
            )
        return self._client

    @staticmethod
    def _wrap(exc: stripe.StripeError, *, action: str) -> PaymentProviderError:
        code = getattr(exc, "code", None)
        logger.error(
            "Stripe call failed",
            extra={"action": action, "stripe_code": code, "error": str(exc)},
        )
        return PaymentProviderError(
            f"Payment provider error during {action}; please retry",
            provider_code=code,
        )

    def ensure_customer(self, *, email: str, name: str, existing_id: str = "") -> str:
        client = self._get_client()
        try:
            if existing_id:
                customer = client.customers.retrieve(existing_id)
                if not getattr(customer, "deleted", False):
                    return customer.id
            customer = client.customers.create(params={"email": email, "name": name})
            return customer.id
        except stripe.StripeError as exc:
            raise self._wrap(exc, action="customer") from exc

    def create_intent(
        self,
        *,
        amount,
        currency,
        metadata,
        idempotency_key,
        customer_id=None,
        destination_account=None,
        application_fee=None,
    ) -> IntentResult:
        params: dict = {
            "amount": int(amount),
            "currency": currency,
            "metadata": {k: str(v) for k, v in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        }
        if customer_id:
            params["customer"] = customer_id
        if destination_account:
            params["transfer_data"] = {"destination": destination_account}
            if application_fee:
                params["application_fee_amount"] = int(application_fee)

        try:
            intent = self._get_client().payment_intents.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as exc:
            raise self._wrap(exc, action="create_intent") from exc

        logger.info("PaymentIntent created", extra={"payment_intent_id": intent.id, "amount": amount})
        return IntentResult(id=intent.id, client_secret=intent.client_secret)

    def cancel_intent(self, intent_id: str) -> None:
        try:
            self._get_client().payment_intents.cancel(intent_id)
        except stripe.StripeError as exc:
            raise self._wrap(exc, action="cancel_intent") from exc

    def refund(self, *, payment_intent_id, amount, idempotency_key, metadata=None) -> RefundResult:
        params: dict = {"payment_intent": payment_intent_id, "amount": int(amount)}
        if metadata:
            params["metadata"] = {k: str(v) for k, v in metadata.items()}

        try:
            refund = self._get_client().refunds.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as exc:
            raise self._wrap(exc, action="refund") from exc

        logger.info(
            "Refund created",
            extra={"refund_id": refund.id, "payment_intent_id": payment_intent_id, "amount": amount},
        )
        return RefundResult(id=refund.id, status=refund.status, amount=refund.amount)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict:
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")
        if not self._webhook_secret:
            raise ImproperlyConfigured("STRIPE_WEBHOOK_SECRET is not configured")

        try:
            text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(
                text,
                signature,
                self._webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
            return json.loads(text)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("Invalid webhook signature", extra={"error": str(exc)})
            raise WebhookSignatureError() from exc


def get_payment_gateway() -> PaymentGateway:
    path = settings.PAYMENTS.get("GATEWAY") or "payments.services.gateway.StripeGateway"
    return import_string(path)()
