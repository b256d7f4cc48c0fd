"""
EngineConfig schema.

The one runtime configuration artifact: a frozen dataclass built from
merged YAML and environment values by ``distribution_config.loader``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any

_PREFIX_RE = re.compile(r"^[A-Z][A-Z0-9]{0,9}$")


@dataclass(frozen=True)
class EngineConfig:
    """Settings the distribution engine reads at runtime."""

    database_url: str
    confirmation_base_url: str
    confirmation_path: str = "/confirmacao-recebimento"
    token_bytes: int = 32
    order_number_prefix: str = "PD"
    receipt_number_prefix: str = "RB"
    money_decimal_places: int = 2

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        if not self.confirmation_base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"confirmation_base_url must be an http(s) URL, got {self.confirmation_base_url!r}"
            )
        if not self.confirmation_path.startswith("/"):
            raise ValueError(f"confirmation_path must start with '/', got {self.confirmation_path!r}")
        if isinstance(self.token_bytes, bool) or not isinstance(self.token_bytes, int):
            raise ValueError("token_bytes must be an integer")
        if self.token_bytes < 16:
            raise ValueError(f"token_bytes must be at least 16, got {self.token_bytes}")
        for name in ("order_number_prefix", "receipt_number_prefix"):
            value = getattr(self, name)
            if not isinstance(value, str) or not _PREFIX_RE.match(value):
                raise ValueError(f"{name} must be 1-10 uppercase letters/digits, got {value!r}")
        if self.order_number_prefix == self.receipt_number_prefix:
            raise ValueError("order and receipt number prefixes must differ")
        if (
            isinstance(self.money_decimal_places, bool)
            or not isinstance(self.money_decimal_places, int)
            or not 0 <= self.money_decimal_places <= 6
        ):
            raise ValueError("money_decimal_places must be an integer between 0 and 6")

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> EngineConfig:
        """Build from a plain dict; unknown keys raise ValueError."""
        unknown = set(data) - cls.field_names()
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        missing = {"database_url", "confirmation_base_url"} - set(data)
        if missing:
            raise ValueError(f"Missing configuration keys: {', '.join(sorted(missing))}")
        return cls(**data)
