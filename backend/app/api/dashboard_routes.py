from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from app.api.deps import (
    domain_errors,
    get_dashboard_service,
    get_household_context,
    get_household_service,
    get_report_service,
    get_transaction_service,
)
from app.auth.firebase_auth import FirebaseUser, get_current_user
from app.schemas.finance_models import DashboardResponse, MonthlyReportResponse
from app.services.dashboard_service import DashboardService
from app.services.export_service import TransactionExportService
from app.services.household_service import HouseholdContext, HouseholdService
from app.services.report_service import ReportService
from app.services.transaction_service import TransactionService

router = APIRouter(tags=["dashboard"])

EXPORT_LIMIT = 10_000
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    user: FirebaseUser = Depends(get_current_user),
    context: HouseholdContext = Depends(get_household_context),
    households: HouseholdService = Depends(get_household_service),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    """Net worth and this month's cash flow in the caller's main currency."""
    with domain_errors():
        summary = service.build(context.household_id, households.main_currency(user.uid))
    return DashboardResponse(**summary)


@router.get("/reports/monthly", response_model=MonthlyReportResponse)
def get_monthly_report(
    months: int = Query(default=6, ge=1, le=24),
    user: FirebaseUser = Depends(get_current_user),
    context: HouseholdContext = Depends(get_household_context),
    households: HouseholdService = Depends(get_household_service),
    service: ReportService = Depends(get_report_service),
) -> MonthlyReportResponse:
    with domain_errors():
        report = service.monthly_report(context.household_id, households.main_currency(user.uid), months)
    return MonthlyReportResponse(**report)


@router.get("/reports/export.xlsx")
def export_transactions(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> StreamingResponse:
    """Download the household's transactions as an Excel workbook."""
    transactions = service.list_transactions(
        context.household_id, date_from=date_from, date_to=date_to, limit=EXPORT_LIMIT
    )
    content = TransactionExportService().build_workbook_bytes(transactions)
    filename = f"transactions_{date.today().isoformat()}.xlsx"
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
