"""
Billing package - subscriptions, the usage ledger and quota enforcement.

This package integrates with:
- Stripe: checkout, billing portal and lifecycle webhooks

Quota decisions are made locally from the usage ledger via QuotaService;
MeteredAction in packages.billing.dependencies gates metered endpoints.
"""
