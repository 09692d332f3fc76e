"""
Template Resolver - loads Cadence transaction templates.

Templates ship with the package under ``templates/transactions``. Text
templates may contain ``%NAME`` placeholders that are substituted before
the script is embedded in a transaction.
"""

import re
from importlib import resources
from pathlib import Path
from typing import Mapping, Optional

import structlog

from voucher.errors import VoucherError

logger = structlog.get_logger(__name__)

FUNGIBLE_TOKEN_ADDRESS = "%FUNGIBLE_TOKEN_ADDRESS"
FUSD_ADDRESS = "%FUSD_ADDRESS"
FLOW_TOKEN_ADDRESS = "%FLOW_TOKEN_ADDRESS"

_PLACEHOLDER = re.compile(r"%[A-Z][A-Z0-9_]+")


class TemplateError(VoucherError):
    """Raised when a template cannot be loaded or rendered."""
    pass


class TemplateNotFoundError(TemplateError, FileNotFoundError):
    """Raised when no template exists under the given name."""
    pass


class TemplateResolver:
    """
    Resolves template names to script bytes or rendered text.

    Args:
        directory: Directory to load templates from instead of the
            packaged ``transactions`` directory
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else None

    def _read(self, name: str) -> bytes:
        if self.directory is not None:
            path = self.directory / name
            if not path.is_file():
                raise TemplateNotFoundError(f"Template not found: {name}")
            return path.read_bytes()

        resource = resources.files("voucher.templates").joinpath("transactions").joinpath(name)
        if not resource.is_file():
            raise TemplateNotFoundError(f"Template not found: {name}")
        return resource.read_bytes()

    def load(self, name: str) -> bytes:
        """Load a template as raw script bytes."""
        script = self._read(name)
        logger.debug("template_loaded", name=name, size=len(script))
        return script

    def render(self, name: str, substitutions: Mapping[str, Optional[str]]) -> str:
        """
        Load a text template and substitute its placeholders.

        Args:
            name: Template name
            substitutions: Placeholder (including the leading ``%``) to value

        Returns:
            Rendered script text

        Raises:
            TemplateError: If a placeholder is left without a value
        """
        text = self._read(name).decode("utf-8")

        # Longest first so no placeholder is clobbered by a shorter prefix
        for placeholder in sorted(substitutions, key=len, reverse=True):
            value = substitutions[placeholder]
            if value is None:
                raise TemplateError(f"No value configured for {placeholder} in {name}")
            text = text.replace(placeholder, value)

        leftover = sorted(set(_PLACEHOLDER.findall(text)))
        if leftover:
            raise TemplateError(f"Unresolved placeholders in {name}: {', '.join(leftover)}")

        logger.debug("template_rendered", name=name, placeholders=len(substitutions))
        return text
