"""
Storefront Services Client

HTTP client for the collaborators the checkout depends on: shipping rates,
discount code validation and order placement.
"""

import json
import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import Settings, settings as default_settings
from ..core.errors import ServiceError
from ..models.cart import CartSnapshot
from ..models.checkout import (
    DiscountValidationRequest,
    DiscountValidationResponse,
    OrderRequest,
    OrderResult,
    ShippingOptionsResponse,
)
from ..models.pricing import ShippingOption

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StorefrontClient:
    """
    Client for the storefront services API.

    Transport failures, error statuses and malformed bodies surface as
    ServiceError, except for shipping lookups which degrade to "no options
    available".
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storefront client.

        Args:
            base_url: Base URL of the storefront services API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to mount an ASGI app in tests)
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "StorefrontClient":
        config = config or default_settings
        return cls(config.storefront_services_url, timeout=config.request_timeout)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request and decode the JSON response"""
        url = f"{self.base_url}{path}"
        body_str = json.dumps(body) if body is not None else None
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                content=body_str,
            )
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url} - {e!r}")
            raise ServiceError(f"Could not reach storefront services: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Request failed: {response.status_code} - {response.text}")
            raise ServiceError(
                f"{method} {path} failed with status {response.status_code}",
                code=f"http_{response.status_code}",
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Non-JSON response from {method} {path}: {response.text[:200]}")
            raise ServiceError(
                f"{method} {path} returned an unreadable response",
                code="bad_response",
            ) from e

    def _parse(self, model: Type[ModelT], data: Any, path: str) -> ModelT:
        """Validate a decoded body against the expected response model"""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Unexpected response shape from {path}: {e}")
            raise ServiceError(
                f"{path} returned an unexpected response",
                code="bad_response",
            ) from e

    # ==================== Shipping APIs ====================

    async def get_shipping_options(self, postal_code: str) -> list[ShippingOption]:
        """Get shipping options for a postal code; empty list on failure"""
        path = "/api/shipping/options"
        try:
            data = await self._request("GET", path, params={"postal_code": postal_code})
            return self._parse(ShippingOptionsResponse, data, path).options
        except ServiceError as e:
            logger.warning(f"No shipping options for {postal_code}: {e.message}")
            return []

    # ==================== Discount APIs ====================

    async def validate_discount_code(
        self,
        code: str,
        cart: CartSnapshot,
    ) -> DiscountValidationResponse:
        """Ask the discount service whether a code applies to a cart"""
        path = "/api/discounts/validate"
        request = DiscountValidationRequest(code=code, cart=cart)
        data = await self._request("POST", path, body=request.model_dump(mode="json"))
        return self._parse(DiscountValidationResponse, data, path)

    # ==================== Order APIs ====================

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        """
        Submit an order for payment capture.

        Declines come back as OrderResult(success=False); transport errors,
        server errors and unreadable responses raise ServiceError.
        """
        path = "/api/orders"
        data = await self._request("POST", path, body=order.model_dump(mode="json"))
        return self._parse(OrderResult, data, path)

    async def get_order(self, order_id: str) -> dict:
        """Get order details"""
        return await self._request("GET", f"/api/orders/{order_id}")
