"""Billing API routes."""

from packages.billing.routes import billing, webhooks, plans, usage

__all__ = ["billing", "webhooks", "plans", "usage"]
