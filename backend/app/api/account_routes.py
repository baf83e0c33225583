from fastapi import APIRouter, Depends

from app.api.deps import domain_errors, get_account_service, get_household_context, get_transaction_service
from app.schemas.finance_models import AccountCreate, AccountResponse, AccountUpdate, ReconciliationResponse
from app.services.account_service import AccountService, present_account
from app.services.household_service import HouseholdContext
from app.services.transaction_service import TransactionService

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    context: HouseholdContext = Depends(get_household_context),
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return [AccountResponse(**a) for a in service.list_accounts(context.household_id)]


@router.post("", response_model=AccountResponse)
def create_account(
    payload: AccountCreate,
    context: HouseholdContext = Depends(get_household_context),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Register an account. The initial balance becomes its opening balance."""
    data = payload.model_dump()
    data["type"] = payload.type.value
    with domain_errors():
        account = service.create_account(context.household_id, data)
    return AccountResponse(**account)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    with domain_errors():
        account = service.get_account(context.household_id, account_id)
    return AccountResponse(**present_account(account))


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    payload: AccountUpdate,
    context: HouseholdContext = Depends(get_household_context),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Edit name and credit card settings. Balances change only through transactions."""
    with domain_errors():
        account = service.update_account(
            context.household_id, account_id, payload.model_dump(exclude_none=True)
        )
    return AccountResponse(**account)


@router.delete("/{account_id}")
def delete_account(
    account_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: AccountService = Depends(get_account_service),
) -> dict:
    with domain_errors():
        service.delete_account(context.household_id, account_id)
    return {"status": "deleted", "account_id": account_id}


@router.get("/{account_id}/reconcile", response_model=ReconciliationResponse)
def reconcile_account(
    account_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> ReconciliationResponse:
    """Check the stored balance against the opening balance plus all transactions."""
    with domain_errors():
        result = service.reconcile_account(context.household_id, account_id)
    return ReconciliationResponse(**result)
