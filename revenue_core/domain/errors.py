"""Domain exception hierarchy shared by pricing, forecasting and cancellation."""

from __future__ import annotations


class RevenueCoreError(Exception):
    """Base exception for revenue management failures."""


class ValidationError(RevenueCoreError, ValueError):
    """Raised when caller-supplied quote inputs are invalid."""


class ConfigurationError(RevenueCoreError, ValueError):
    """Raised when catalog or dynamic pricing configuration is incomplete or malformed."""


class ForecastValidationError(RevenueCoreError, ValueError):
    """Raised when forecast inputs cannot be interpreted."""
