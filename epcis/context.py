"""
Hash Context Configuration

Immutable settings for one hash generation run:
- CBV version (controls where user extensions are serialized and the ?ver= tag)
- Fields excluded from the pre-hash string
- Join string used when rendering the pre-hash for display

Each with_* method returns a new context, so a configured context can be
shared freely between threads.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional, Union

from dotenv import load_dotenv

from epcis.constants import DEFAULT_EXCLUDED_FIELDS
from epcis.exceptions import ConfigurationError


class CBVVersion(Enum):
    """CBV standard version used for the event hash."""
    V2_0 = "2.0"
    V2_1 = "2.1"

    @property
    def tag(self) -> str:
        """Version tag appended to hash identifiers, e.g. 'CBV2.0'."""
        return f"CBV{self.value}"

    @classmethod
    def parse(cls, value: Union["CBVVersion", str, None]) -> "CBVVersion":
        """
        Parse a version from its enum, "2.0"/"2.0.0"/"CBV2.0" style strings.

        Raises:
            ConfigurationError: If the version is not supported
        """
        if value is None:
            return cls.V2_0
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text.startswith("CBV"):
            text = text[3:]
        if text.endswith(".0") and text.count(".") == 2:
            text = text[:-2]
        for version in cls:
            if version.value == text:
                return version
        raise ConfigurationError(f"Unsupported CBV version: {value}")


@dataclass(frozen=True)
class HashContext:
    """Per-run configuration passed to the canonicaliser and generator."""
    cbv_version: CBVVersion = CBVVersion.V2_0
    excluded_fields: FrozenSet[str] = field(default=DEFAULT_EXCLUDED_FIELDS)
    prehash_join: str = ""

    def with_cbv_version(self, version: Union[CBVVersion, str]) -> "HashContext":
        return replace(self, cbv_version=CBVVersion.parse(version))

    def with_excluded_fields(self, fields: Optional[str]) -> "HashContext":
        """
        Exclude additional fields from the pre-hash string.

        Args:
            fields: Comma-separated field names, e.g. "bizStep, example:myField"

        Returns:
            New context excluding the defaults plus the given names. A blank
            value returns this context unchanged.

        Example:
            >>> ctx = HashContext().with_excluded_fields("bizStep, action")
            >>> "action" in ctx.excluded_fields
            True
        """
        if not fields or not fields.strip():
            return self
        names = {name.strip() for name in fields.split(",") if name.strip()}
        return replace(self, excluded_fields=DEFAULT_EXCLUDED_FIELDS | frozenset(names))

    def with_prehash_join(self, join: Optional[str]) -> "HashContext":
        """Set the pre-hash join string; literal '\\n' and '\\r' become line breaks."""
        join = (join or "").replace("\\n", "\n").replace("\\r", "\r")
        return replace(self, prehash_join=join)

    def is_excluded(self, name: Optional[str]) -> bool:
        """Whether a field is excluded (any exclusion is a prefix of its name)."""
        if name is None:
            return False
        return any(name.startswith(excluded) for excluded in self.excluded_fields)

    @classmethod
    def from_env(cls) -> "HashContext":
        """
        Build a context from environment variables (.env supported).

        EPCIS_CBV_VERSION: "2.0" or "2.1" (default "2.0")
        EPCIS_IGNORE_FIELDS: comma-separated extra excluded fields
        EPCIS_PREHASH_JOIN: pre-hash join string (default empty)
        """
        load_dotenv()
        return (
            cls()
            .with_cbv_version(os.getenv("EPCIS_CBV_VERSION", "2.0"))
            .with_excluded_fields(os.getenv("EPCIS_IGNORE_FIELDS", ""))
            .with_prehash_join(os.getenv("EPCIS_PREHASH_JOIN", ""))
        )
