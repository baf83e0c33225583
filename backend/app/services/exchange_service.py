"""Exchange rate lookup and currency conversion."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from app.core.exceptions import ExchangeRateNotFoundError
from app.core.logging import get_logger
from app.core.money import convert_currency, quantize_amount, to_decimal, to_storage
from app.repositories.finance_repo import FinanceRepository

logger = get_logger("fintrack.services.exchange")

ONE = Decimal("1")


class ExchangeRateService:
    def __init__(self, repository: FinanceRepository) -> None:
        self.repository = repository
        self._cache: dict[tuple[str, str], Decimal] = {}

    def list_rates(
        self,
        base_currency: Optional[str] = None,
        target_currency: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        rates = self.repository.list_exchange_rates(base_currency, target_currency)
        return sorted(
            rates,
            key=lambda r: (r["base_currency"], r["target_currency"], r.get("effective_date", "")),
        )

    def create_rate(
        self,
        base_currency: str,
        target_currency: str,
        rate: Any,
        rate_type: str = "real",
        effective_date: Optional[date] = None,
    ) -> dict[str, Any]:
        saved = self.repository.create_exchange_rate(
            {
                "base_currency": base_currency,
                "target_currency": target_currency,
                "rate": to_storage(rate),
                "rate_type": rate_type,
                "effective_date": (effective_date or date.today()).isoformat(),
            }
        )
        self._cache.clear()
        logger.info(f"Stored {rate_type} rate {base_currency}->{target_currency} = {rate}")
        return saved

    @staticmethod
    def _newest(rates: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
        if not rates:
            return None
        return max(rates, key=lambda r: (r.get("effective_date", ""), r.get("created_at", "")))

    def latest_rate(self, base_currency: str, target_currency: str) -> Decimal:
        """
        Rate that converts one unit of ``base_currency`` into ``target_currency``.

        Same currency is 1. Otherwise the newest direct rate wins, then the
        inverse of the newest reverse rate.

        Raises:
            ExchangeRateNotFoundError: if neither direction is known
        """
        if base_currency == target_currency:
            return ONE

        key = (base_currency, target_currency)
        if key in self._cache:
            return self._cache[key]

        direct = self._newest(self.repository.list_exchange_rates(base_currency, target_currency))
        if direct:
            rate = to_decimal(direct["rate"])
        else:
            reverse = self._newest(self.repository.list_exchange_rates(target_currency, base_currency))
            if not reverse or to_decimal(reverse["rate"]) == 0:
                raise ExchangeRateNotFoundError(base_currency, target_currency)
            rate = ONE / to_decimal(reverse["rate"])

        self._cache[key] = rate
        return rate

    def convert(self, amount: Any, base_currency: str, target_currency: str) -> tuple[Decimal, Decimal]:
        """Convert ``amount``; returns (converted amount, rate used)."""
        rate = self.latest_rate(base_currency, target_currency)
        converted = quantize_amount(convert_currency(amount, rate), target_currency)
        return converted, rate

    def convert_many(
        self,
        amounts: list[tuple[Any, str]],
        target_currency: str,
    ) -> tuple[Decimal, list[str]]:
        """Sum ``(amount, currency)`` pairs in ``target_currency``.

        Currencies without a known rate are skipped and returned separately.
        """
        total = Decimal("0")
        missing: set[str] = set()
        for amount, currency in amounts:
            try:
                converted, _ = self.convert(amount, currency, target_currency)
            except ExchangeRateNotFoundError:
                missing.add(currency)
                continue
            total += converted
        if missing:
            logger.warning(f"No rate to {target_currency} for: {', '.join(sorted(missing))}")
        return total, sorted(missing)
