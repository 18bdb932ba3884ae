# payments/tests/fakes.py

"""
In-memory PaymentGateway used by the test settings.

- records every call in `calls` (name, kwargs)
- `fail_next = "create_intent"` (or "refund", ...) makes the next such call
  raise PaymentProviderError
- signatures are valid only when the header equals VALID_SIGNATURE
"""

from __future__ import annotations

import itertools
import json

from payments.services.gateway import (
    IntentResult,
    PaymentGateway,
    PaymentProviderError,
    RefundResult,
    WebhookSignatureError,
)

VALID_SIGNATURE = "t=1,v1=fake-valid-signature"

_ids = itertools.count(1)


class FakePaymentGateway(PaymentGateway):
    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.fail_next: str | None = None

    def _record(self, name: str, /, **kwargs):
        self.calls.append((name, kwargs))
        if self.fail_next == name:
            self.fail_next = None
            raise PaymentProviderError(f"Simulated {name} failure")

    def calls_named(self, name: str) -> list[dict]:
        return [kwargs for call, kwargs in self.calls if call == name]

    def ensure_customer(self, *, email, name, existing_id=""):
        self._record("ensure_customer", email=email, name=name, existing_id=existing_id)
        return existing_id or f"cus_fake_{next(_ids)}"

    def create_intent(self, **kwargs):
        self._record("create_intent", **kwargs)
        n = next(_ids)
        return IntentResult(id=f"pi_fake_{n}", client_secret=f"pi_fake_{n}_secret")

    def cancel_intent(self, intent_id):
        self._record("cancel_intent", intent_id=intent_id)

    def refund(self, *, payment_intent_id, amount, idempotency_key, metadata=None):
        self._record(
            "refund",
            payment_intent_id=payment_intent_id,
            amount=amount,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )
        return RefundResult(id=f"re_fake_{next(_ids)}", status="succeeded", amount=amount)

    def verify_webhook_signature(self, payload, signature):
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")
        if signature != VALID_SIGNATURE:
            raise WebhookSignatureError()
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise WebhookSignatureError() from exc
