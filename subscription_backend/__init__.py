"""Subscription billing backend: Razorpay webhooks and owner status on Firestore."""

__version__ = "0.1.0"
