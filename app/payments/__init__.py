"""
Payments app for multi-provider checkout and settlement reconciliation.

This app handles:
- Checkout sessions for item purchases, installment plans and subscriptions
- Provider adapters (Stripe, Paystack) behind a single registry
- Exactly-once settlement of provider callbacks into the transaction ledger
- Production task creation and installment progress on settlement
- Webhook intake with signature verification and redelivery tracking

Related apps:
    - authentication: User identity for payers
    - production: Catalog items, customers and production tasks

Usage:
    from payments.services import get_checkout_orchestrator, get_settlement_reconciler

    result = get_checkout_orchestrator().start_checkout(purchase_request)
    get_settlement_reconciler().verify("paystack", "T123")
"""
