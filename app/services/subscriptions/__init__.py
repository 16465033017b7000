from .reconciler import SubscriptionReconciler, verify_webhook_authorization

__all__ = ["SubscriptionReconciler", "verify_webhook_authorization"]
