"""Custom exceptions for the FinTrack application."""

from __future__ import annotations


class FinTrackError(Exception):
    """Base exception for all FinTrack errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(FinTrackError):
    """Raised when input validation fails."""

    pass


class EntityNotFoundError(FinTrackError):
    """Raised when an entity is not found."""

    pass


class ExchangeRateNotFoundError(EntityNotFoundError):
    """Raised when no exchange rate exists for a currency pair."""

    def __init__(self, base_currency: str, target_currency: str) -> None:
        super().__init__(
            f"No exchange rate from {base_currency} to {target_currency}",
            {"base_currency": base_currency, "target_currency": target_currency},
        )
        self.base_currency = base_currency
        self.target_currency = target_currency


class PermissionDeniedError(FinTrackError):
    """Raised when the user's household role does not allow an action."""

    pass


class ConflictError(FinTrackError):
    """Raised when an action conflicts with existing data."""

    pass
