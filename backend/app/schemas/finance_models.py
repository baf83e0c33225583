"""
Finance Models

Pydantic models for categories, accounts, transactions, installments,
exchange rates, the dashboard and reports.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.constants import (
    CATEGORY_ICONS,
    CURRENCY_CODES,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    MAX_INSTALLMENTS,
)

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CREDIT_CARD = "credit_card"
    CRYPTO = "crypto"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class RateType(str, Enum):
    OFFICIAL = "official"
    REAL = "real"
    CUSTOM = "custom"


def _currency_code(value: str) -> str:
    value = value.strip().upper()
    if value not in CURRENCY_CODES:
        raise ValueError(f"Unsupported currency: {value}")
    return value


# =============================================================================
# Categories
# =============================================================================


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    type: CategoryType
    icon: str = DEFAULT_CATEGORY_ICON
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category name cannot be blank")
        return value

    @field_validator("icon")
    @classmethod
    def _known_icon(cls, value: str) -> str:
        if value not in CATEGORY_ICONS:
            raise ValueError(f"Unknown icon: {value}")
        return value


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Category name cannot be blank")
        return value

    @field_validator("icon")
    @classmethod
    def _known_icon(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CATEGORY_ICONS:
            raise ValueError(f"Unknown icon: {value}")
        return value


class CategoryResponse(BaseModel):
    id: str
    household_id: str
    name: str
    type: CategoryType
    icon: str
    color: str
    created_at: str


# =============================================================================
# Accounts
# =============================================================================


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.BANK
    currency: str = "USD"
    balance: Decimal = Decimal("0")
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    closing_day: Optional[int] = Field(default=None, ge=1, le=31)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, value: str) -> str:
        return _currency_code(value)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Account name cannot be blank")
        return value


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    closing_day: Optional[int] = Field(default=None, ge=1, le=31)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)


class AccountResponse(BaseModel):
    id: str
    household_id: str
    name: str
    type: AccountType
    currency: str
    balance: Decimal
    opening_balance: Decimal = Decimal("0")
    credit_limit: Optional[Decimal] = None
    closing_day: Optional[int] = None
    due_day: Optional[int] = None
    available_credit: Optional[Decimal] = None
    formatted_balance: str = ""
    created_at: str
    updated_at: str


class ReconciliationResponse(BaseModel):
    account_id: str
    currency: str
    recorded_balance: Decimal
    expected_balance: Decimal
    difference: Decimal
    transaction_count: int
    is_consistent: bool


# =============================================================================
# Transactions & installments
# =============================================================================


class TransactionCreate(BaseModel):
    account_id: str = Field(..., min_length=1)
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    currency: Optional[str] = None
    date: dt.date
    category_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=255)
    to_account_id: Optional[str] = None
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    is_installment: bool = False
    installment_count: Optional[int] = Field(default=None, ge=2, le=MAX_INSTALLMENTS)

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, value: Optional[str]) -> Optional[str]:
        return _currency_code(value) if value is not None else value

    @model_validator(mode="after")
    def _check_shape(self) -> "TransactionCreate":
        if self.type == TransactionType.TRANSFER:
            if not self.to_account_id:
                raise ValueError("Transfers require to_account_id")
            if self.to_account_id == self.account_id:
                raise ValueError("Cannot transfer to the same account")
            if self.category_id:
                raise ValueError("Transfers cannot have a category")
        elif self.to_account_id:
            raise ValueError("Only transfers can have a destination account")

        if self.is_installment:
            if self.type != TransactionType.EXPENSE:
                raise ValueError("Only expenses can be paid in installments")
            if self.installment_count is None:
                raise ValueError("installment_count is required for installment purchases")
        elif self.installment_count is not None:
            raise ValueError("installment_count requires is_installment")
        return self


class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(default=None, max_length=255)
    category_id: Optional[str] = None
    date: Optional[dt.date] = None


class InstallmentResponse(BaseModel):
    id: str
    transaction_id: str
    household_id: str
    total_installments: int
    current_installment: int
    installment_amount: Decimal
    payment_date: dt.date
    is_paid: bool
    created_at: str
    description: Optional[str] = None
    currency: Optional[str] = None


class TransactionResponse(BaseModel):
    id: str
    household_id: str
    account_id: str
    category_id: Optional[str] = None
    to_account_id: Optional[str] = None
    amount: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    date: dt.date
    type: TransactionType
    description: Optional[str] = None
    is_installment: bool = False
    created_at: str
    updated_at: str
    account_name: Optional[str] = None
    to_account_name: Optional[str] = None
    category_name: Optional[str] = None
    category_type: Optional[CategoryType] = None
    category_color: Optional[str] = None
    formatted_amount: str = ""
    installments: list[InstallmentResponse] = []


# =============================================================================
# Exchange rates
# =============================================================================


class ExchangeRateCreate(BaseModel):
    base_currency: str
    target_currency: str
    rate: Decimal = Field(..., gt=0)
    rate_type: RateType = RateType.REAL
    effective_date: Optional[dt.date] = None

    @field_validator("base_currency", "target_currency")
    @classmethod
    def _check_currency(cls, value: str) -> str:
        return _currency_code(value)


class ExchangeRateResponse(BaseModel):
    id: str
    base_currency: str
    target_currency: str
    rate: Decimal
    rate_type: RateType
    effective_date: dt.date
    created_at: str


class ConversionResponse(BaseModel):
    amount: Decimal
    base_currency: str
    target_currency: str
    rate: Decimal
    converted: Decimal
    formatted: str


# =============================================================================
# Dashboard & reports
# =============================================================================


class MoneyFigure(BaseModel):
    amount: Decimal
    currency: str
    formatted: str


class DashboardResponse(BaseModel):
    main_currency: str
    total_net_worth: MoneyFigure
    monthly_income: MoneyFigure
    monthly_expenses: MoneyFigure
    active_accounts: int
    unconverted_currencies: list[str] = []
    recent_transactions: list[TransactionResponse] = []
    accounts: list[AccountResponse] = []


class MonthlyReportRow(BaseModel):
    month: str
    income: Decimal
    expenses: Decimal
    net: Decimal


class CategoryBreakdownRow(BaseModel):
    category: str
    color: Optional[str] = None
    amount: Decimal


class MonthlyReportResponse(BaseModel):
    main_currency: str
    months: list[MonthlyReportRow]
    expense_breakdown: list[CategoryBreakdownRow]
    unconverted_currencies: list[str] = []


class SeedResponse(BaseModel):
    categories: int
    exchange_rates: int
    accounts: int
    transactions: int
    installments: int
    errors: list[str] = []


class MetaResponse(BaseModel):
    currencies: list[dict[str, Any]]
    account_types: list[dict[str, Any]]
    category_icons: list[str]
