from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import domain_errors, get_household_context, get_transaction_service
from app.auth.firebase_auth import FirebaseUser, get_current_user
from app.schemas.finance_models import (
    InstallmentResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionType,
    TransactionUpdate,
)
from app.services.household_service import HouseholdContext
from app.services.transaction_service import TransactionService

router = APIRouter(tags=["transactions"])


@router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    account_id: Optional[str] = None,
    category_id: Optional[str] = None,
    type: Optional[TransactionType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> list[TransactionResponse]:
    transactions = service.list_transactions(
        context.household_id,
        account_id=account_id,
        category_id=category_id,
        txn_type=type.value if type else None,
        date_from=date_from,
        date_to=date_to,
        search=search,
        limit=limit,
    )
    return [TransactionResponse(**t) for t in transactions]


@router.post("/transactions", response_model=TransactionResponse)
def create_transaction(
    payload: TransactionCreate,
    user: FirebaseUser = Depends(get_current_user),
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionResponse:
    """
    Record income, an expense or a transfer.

    Account balances move in the same atomic write as the transaction.
    Installment purchases also get their payment schedule.
    """
    data = payload.model_dump()
    data["type"] = payload.type.value
    with domain_errors():
        txn = service.create_transaction(context.household_id, user.uid, data)
    return TransactionResponse(**txn)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionResponse:
    with domain_errors():
        txn = service.get_transaction(context.household_id, transaction_id)
    return TransactionResponse(**txn)


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionResponse:
    with domain_errors():
        txn = service.update_transaction(
            context.household_id, transaction_id, payload.model_dump(exclude_unset=True)
        )
    return TransactionResponse(**txn)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> dict:
    """Delete a transaction and reverse its effect on account balances."""
    with domain_errors():
        service.delete_transaction(context.household_id, transaction_id)
    return {"status": "deleted", "transaction_id": transaction_id}


# =============================================================================
# Installments
# =============================================================================

@router.get("/installments", response_model=list[InstallmentResponse])
def list_installments(
    pending_only: bool = False,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> list[InstallmentResponse]:
    installments = service.list_installments(context.household_id, pending_only=pending_only)
    return [InstallmentResponse(**i) for i in installments]


@router.post("/installments/{installment_id}/pay", response_model=InstallmentResponse)
def pay_installment(
    installment_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: TransactionService = Depends(get_transaction_service),
) -> InstallmentResponse:
    with domain_errors():
        installment = service.pay_installment(context.household_id, installment_id)
    return InstallmentResponse(**installment)
