"""Checkout error taxonomy"""

from typing import Optional


class CheckoutError(Exception):
    """Base class for every error raised by the checkout engine"""

    code = "checkout_error"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(CheckoutError):
    """Local, field or step scoped error the user can fix by editing input"""

    code = "validation_error"


class QuantityOutOfRangeError(ValidationError):
    code = "quantity_out_of_range"


class ConfigurationError(CheckoutError):
    """A subscription plan configuration does not satisfy its tier"""

    code = "configuration_error"


class InvalidConfigurationError(ConfigurationError):
    code = "invalid_configuration"


class ServiceError(CheckoutError):
    """An external collaborator (shipping, discounts, orders) failed"""

    code = "service_error"


class InvariantViolation(CheckoutError):
    """Programmer error: the caller broke a contract of the engine"""

    code = "invariant_violation"


class CheckoutLockedError(InvariantViolation):
    """Mutation attempted while the order is being placed or after it was placed"""

    code = "checkout_locked"
