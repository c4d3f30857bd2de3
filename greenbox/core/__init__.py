# Core modules

from .config import settings, get_settings, Settings
from .requests import RequestState, RequestStatus
from .errors import (
    CheckoutError,
    ValidationError,
    QuantityOutOfRangeError,
    ConfigurationError,
    InvalidConfigurationError,
    ServiceError,
    InvariantViolation,
    CheckoutLockedError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "RequestState",
    "RequestStatus",
    "CheckoutError",
    "ValidationError",
    "QuantityOutOfRangeError",
    "ConfigurationError",
    "InvalidConfigurationError",
    "ServiceError",
    "InvariantViolation",
    "CheckoutLockedError",
]
