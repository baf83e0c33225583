"""Unit tests for ExchangeRateService."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import ExchangeRateNotFoundError
from app.services.exchange_service import ExchangeRateService


@pytest.fixture
def exchange(finance_repo) -> ExchangeRateService:
    service = ExchangeRateService(finance_repo)
    service.create_rate("USD", "ARS", Decimal("900"), "official", date(2024, 1, 1))
    service.create_rate("USD", "ARS", Decimal("1000"), "real", date(2024, 3, 1))
    service.create_rate("USD", "BRL", Decimal("5"), "real", date(2024, 3, 1))
    return service


class TestLatestRate:
    def test_same_currency_is_one(self, exchange):
        assert exchange.latest_rate("EUR", "EUR") == Decimal("1")

    def test_newest_direct_rate_wins(self, exchange):
        assert exchange.latest_rate("USD", "ARS") == Decimal("1000")

    def test_inverse_of_reverse_rate(self, exchange):
        assert exchange.latest_rate("BRL", "USD") == Decimal("0.2")

    def test_unknown_pair_raises(self, exchange):
        with pytest.raises(ExchangeRateNotFoundError):
            exchange.latest_rate("EUR", "USD")

    def test_new_rate_clears_cache(self, exchange):
        assert exchange.latest_rate("USD", "BRL") == Decimal("5")
        exchange.create_rate("USD", "BRL", Decimal("5.5"), "real", date(2024, 3, 2))
        assert exchange.latest_rate("USD", "BRL") == Decimal("5.5")


class TestConvert:
    def test_convert_quantizes_to_target_precision(self, exchange):
        converted, rate = exchange.convert("12345", "ARS", "USD")
        assert rate == Decimal("0.001")
        assert converted == Decimal("12.35")

    def test_convert_many_reports_missing_currencies(self, exchange):
        total, missing = exchange.convert_many(
            [("100", "USD"), ("50000", "ARS"), ("10", "EUR"), ("10", "BRL")],
            "USD",
        )
        assert total == Decimal("152.00")
        assert missing == ["EUR"]

    def test_list_rates_filters_by_pair(self, exchange):
        rates = exchange.list_rates("USD", "ARS")
        assert [r["effective_date"] for r in rates] == ["2024-01-01", "2024-03-01"]
        assert all(r["rate"] in ("900", "1000") for r in rates)
