"""
Cadence transaction templates.
"""

from voucher.templates.resolver import (
    FLOW_TOKEN_ADDRESS,
    FUNGIBLE_TOKEN_ADDRESS,
    FUSD_ADDRESS,
    TemplateError,
    TemplateNotFoundError,
    TemplateResolver,
)

__all__ = [
    "TemplateResolver",
    "TemplateError",
    "TemplateNotFoundError",
    "FUNGIBLE_TOKEN_ADDRESS",
    "FUSD_ADDRESS",
    "FLOW_TOKEN_ADDRESS",
]
