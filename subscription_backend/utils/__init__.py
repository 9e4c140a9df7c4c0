"""Utility functions and helpers for the billing backend."""

from subscription_backend.utils.billing_period import (
    parse_billing_period,
    validate_billing_period,
)
from subscription_backend.utils.clock import Clock, as_utc

__all__ = [
    # Billing period parsing
    "parse_billing_period",
    "validate_billing_period",
    # Time
    "Clock",
    "as_utc",
]
