from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import domain_errors, get_exchange_service
from app.auth.firebase_auth import FirebaseUser, get_current_user
from app.core.constants import CURRENCY_CODES
from app.core.money import format_currency
from app.schemas.finance_models import ConversionResponse, ExchangeRateCreate, ExchangeRateResponse
from app.services.exchange_service import ExchangeRateService

router = APIRouter(prefix="/exchange-rates", tags=["exchange-rates"])


def _currency_param(value: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return None
    code = value.strip().upper()
    if code not in CURRENCY_CODES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported currency for {name}: {value}",
        )
    return code


@router.get("", response_model=list[ExchangeRateResponse])
def list_exchange_rates(
    base: Optional[str] = None,
    target: Optional[str] = None,
    user: FirebaseUser = Depends(get_current_user),
    service: ExchangeRateService = Depends(get_exchange_service),
) -> list[ExchangeRateResponse]:
    rates = service.list_rates(
        _currency_param(base, "base"),
        _currency_param(target, "target"),
    )
    return [ExchangeRateResponse(**r) for r in rates]


@router.post("", response_model=ExchangeRateResponse)
def create_exchange_rate(
    payload: ExchangeRateCreate,
    user: FirebaseUser = Depends(get_current_user),
    service: ExchangeRateService = Depends(get_exchange_service),
) -> ExchangeRateResponse:
    if payload.base_currency == payload.target_currency:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Base and target currency must differ",
        )
    rate = service.create_rate(
        payload.base_currency,
        payload.target_currency,
        payload.rate,
        payload.rate_type.value,
        payload.effective_date,
    )
    return ExchangeRateResponse(**rate)


@router.get("/convert", response_model=ConversionResponse)
def convert_amount(
    amount: Decimal = Query(..., ge=0),
    base: str = Query(...),
    target: str = Query(...),
    user: FirebaseUser = Depends(get_current_user),
    service: ExchangeRateService = Depends(get_exchange_service),
) -> ConversionResponse:
    """Convert an amount using the most recent known rate."""
    base = _currency_param(base, "base")
    target = _currency_param(target, "target")
    with domain_errors():
        converted, rate = service.convert(amount, base, target)
    return ConversionResponse(
        amount=amount,
        base_currency=base,
        target_currency=target,
        rate=rate,
        converted=converted,
        formatted=format_currency(converted, target),
    )
