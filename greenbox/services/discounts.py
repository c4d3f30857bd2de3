"""
Discount code client

Wraps the discount validation boundary with request lifecycle tracking and
a last-request-wins guard. It reports outcomes; the checkout decides what
to do with them.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..core.errors import ServiceError
from ..core.requests import RequestState
from ..models.cart import CartSnapshot
from ..models.checkout import DiscountValidationResponse
from ..models.pricing import Discount

logger = logging.getLogger(__name__)

DiscountValidator = Callable[[str, CartSnapshot], Awaitable[DiscountValidationResponse]]

INVALID_CODE = "Invalid discount code"
SERVICE_FAILURE = "Failed to validate discount code"
EMPTY_CODE = "Enter a discount code"


@dataclass
class DiscountResult:
    """Outcome of one apply attempt"""
    success: bool
    discount: Optional[Discount] = None
    error_reason: Optional[str] = None
    # A newer request (or a removal) superseded this one
    stale: bool = False


class DiscountClient:
    """Applies discount codes through an async validator"""

    def __init__(self, validate_code: DiscountValidator):
        self._validate_code = validate_code
        self.state = RequestState()

    @property
    def is_validating(self) -> bool:
        return self.state.is_pending

    async def apply_code(self, code: str, cart: CartSnapshot) -> DiscountResult:
        """
        Validate a code against a cart snapshot.

        Codes are trimmed and upper-cased. A response that arrives after a
        newer request started comes back with ``stale=True``.
        """
        normalized = (code or "").strip().upper()
        if not normalized:
            return DiscountResult(success=False, error_reason=EMPTY_CODE)

        sequence = self.state.start()
        logger.debug(f"Validating discount code {normalized} (request {sequence})")

        try:
            response = await self._validate_code(normalized, cart)
        except ServiceError as e:
            if not self.state.is_current(sequence):
                return DiscountResult(success=False, stale=True)
            logger.warning(f"Discount validation failed for {normalized}: {e.message}")
            self.state.fail(SERVICE_FAILURE)
            return DiscountResult(success=False, error_reason=SERVICE_FAILURE)
        except BaseException:
            if self.state.is_current(sequence):
                self.state.fail(SERVICE_FAILURE)
            raise

        if not self.state.is_current(sequence):
            logger.debug(f"Ignoring stale discount response for {normalized} (request {sequence})")
            return DiscountResult(success=False, stale=True)

        if response.valid and response.discount is not None:
            self.state.succeed()
            return DiscountResult(success=True, discount=response.discount)

        reason = response.reason or INVALID_CODE
        self.state.fail(reason)
        return DiscountResult(success=False, error_reason=reason)

    def cancel_pending(self) -> None:
        """Make any in-flight request stale"""
        self.state.supersede()
