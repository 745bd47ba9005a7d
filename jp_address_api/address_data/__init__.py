"""HTTP client wrappers for the Japanese address master data."""

from .client import (
    AddressDataClient,
    AddressDataError,
    AddressDataNotFoundError,
    AddressDataUnavailableError,
    default_client,
)

__all__ = [
    "AddressDataClient",
    "AddressDataError",
    "AddressDataNotFoundError",
    "AddressDataUnavailableError",
    "default_client",
]
