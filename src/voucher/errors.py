"""
Base exception for the voucher client.

Concrete errors live next to the component that raises them.
"""


class VoucherError(Exception):
    """Root of every error raised by the voucher client."""
    pass


class ConfigurationError(VoucherError, RuntimeError):
    """Raised when a required setting or signing key is missing."""
    pass


class InvalidInputError(VoucherError, ValueError):
    """Raised for malformed caller input such as addresses and keys."""
    pass
