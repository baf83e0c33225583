"""
Shared FastAPI dependencies.

Services are built per request on top of the repository singletons, so tests
can swap repositories with ``app.dependency_overrides``.
"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException, status

from app.auth.firebase_auth import FirebaseUser, get_current_user
from app.core.exceptions import (
    ConflictError,
    EntityNotFoundError,
    FinTrackError,
    PermissionDeniedError,
    ValidationError,
)
from app.repositories.finance_repo import FinanceRepository, get_finance_repo
from app.repositories.household_repo import HouseholdRepository, get_household_repo
from app.services.account_service import AccountService
from app.services.category_service import CategoryService
from app.services.dashboard_service import DashboardService
from app.services.exchange_service import ExchangeRateService
from app.services.household_service import HouseholdContext, HouseholdService
from app.services.report_service import ReportService
from app.services.seed_service import SeedService
from app.services.transaction_service import TransactionService

_STATUS_BY_ERROR = (
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


def http_error(error: FinTrackError) -> HTTPException:
    """Map a domain error onto an HTTP error response."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)


@contextmanager
def domain_errors() -> Iterator[None]:
    """Re-raise domain errors from the wrapped block as HTTP errors."""
    try:
        yield
    except FinTrackError as e:
        raise http_error(e) from e


# =============================================================================
# Services
# =============================================================================


def get_household_service(
    repo: HouseholdRepository = Depends(get_household_repo),
    finance_repo: FinanceRepository = Depends(get_finance_repo),
) -> HouseholdService:
    return HouseholdService(repo, finance_repo)


def get_household_context(
    user: FirebaseUser = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
) -> HouseholdContext:
    """The caller's household, provisioned on first access."""
    return service.get_context(user)


def get_category_service(finance_repo: FinanceRepository = Depends(get_finance_repo)) -> CategoryService:
    return CategoryService(finance_repo)


def get_account_service(finance_repo: FinanceRepository = Depends(get_finance_repo)) -> AccountService:
    return AccountService(finance_repo)


def get_transaction_service(finance_repo: FinanceRepository = Depends(get_finance_repo)) -> TransactionService:
    return TransactionService(finance_repo)


def get_exchange_service(finance_repo: FinanceRepository = Depends(get_finance_repo)) -> ExchangeRateService:
    return ExchangeRateService(finance_repo)


def get_dashboard_service(
    finance_repo: FinanceRepository = Depends(get_finance_repo),
    exchange: ExchangeRateService = Depends(get_exchange_service),
    transactions: TransactionService = Depends(get_transaction_service),
) -> DashboardService:
    return DashboardService(finance_repo, exchange, transactions)


def get_report_service(
    finance_repo: FinanceRepository = Depends(get_finance_repo),
    exchange: ExchangeRateService = Depends(get_exchange_service),
) -> ReportService:
    return ReportService(finance_repo, exchange)


def get_seed_service(
    finance_repo: FinanceRepository = Depends(get_finance_repo),
    accounts: AccountService = Depends(get_account_service),
    transactions: TransactionService = Depends(get_transaction_service),
    exchange: ExchangeRateService = Depends(get_exchange_service),
) -> SeedService:
    return SeedService(finance_repo, accounts, transactions, exchange)
