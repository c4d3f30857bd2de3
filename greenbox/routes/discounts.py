"""Discount validation API routes for mock storefront services"""

from fastapi import APIRouter

from ..database.discounts import discount_db
from ..models.checkout import DiscountValidationRequest, DiscountValidationResponse

router = APIRouter(prefix="/api/discounts", tags=["Discounts"])


@router.post("/validate", response_model=DiscountValidationResponse)
async def validate_discount(request: DiscountValidationRequest):
    """Check whether a discount code applies to a cart"""
    discount, reason = discount_db.validate(request.code, request.cart)
    if discount is None:
        return DiscountValidationResponse(valid=False, reason=reason)
    return DiscountValidationResponse(valid=True, discount=discount)
