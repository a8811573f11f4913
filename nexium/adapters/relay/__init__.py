"""Webhook relay adapter."""

from nexium.adapters.relay.webhook_client import WebhookRelay

__all__ = ["WebhookRelay"]
