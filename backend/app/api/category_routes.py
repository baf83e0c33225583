from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import domain_errors, get_category_service, get_household_context
from app.schemas.finance_models import CategoryCreate, CategoryResponse, CategoryType, CategoryUpdate
from app.services.category_service import CategoryService
from app.services.household_service import HouseholdContext

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
def list_categories(
    type: Optional[CategoryType] = None,
    context: HouseholdContext = Depends(get_household_context),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryResponse]:
    categories = service.list_categories(context.household_id, type.value if type else None)
    return [CategoryResponse(**c) for c in categories]


@router.post("", response_model=CategoryResponse)
def create_category(
    payload: CategoryCreate,
    context: HouseholdContext = Depends(get_household_context),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    with domain_errors():
        category = service.create_category(context.household_id, payload.model_dump(mode="json"))
    return CategoryResponse(**category)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    context: HouseholdContext = Depends(get_household_context),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    with domain_errors():
        category = service.update_category(
            context.household_id, category_id, payload.model_dump(exclude_none=True)
        )
    return CategoryResponse(**category)


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: CategoryService = Depends(get_category_service),
) -> dict:
    with domain_errors():
        service.delete_category(context.household_id, category_id)
    return {"status": "deleted", "category_id": category_id}
