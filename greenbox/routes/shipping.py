"""Shipping rate API routes for mock storefront services"""

from fastapi import APIRouter, Query

from ..database.shipping import shipping_rates
from ..models.checkout import ShippingOptionsResponse

router = APIRouter(prefix="/api/shipping", tags=["Shipping"])


@router.get("/options", response_model=ShippingOptionsResponse)
async def get_shipping_options(postal_code: str = Query(..., description="Destination ZIP code")):
    """Shipping options offered for a postal code"""
    return ShippingOptionsResponse(options=shipping_rates.options_for(postal_code))
