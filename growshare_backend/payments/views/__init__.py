from .intents import CreateIntentView, RefundView
from .stripe_webhook import StripeWebhookView, WebhookThrottle

__all__ = ["CreateIntentView", "RefundView", "StripeWebhookView", "WebhookThrottle"]
