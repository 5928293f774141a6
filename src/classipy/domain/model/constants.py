"""Well-known concept identifiers used by the classification core."""

from __future__ import annotations

from typing import Final

ISA: Final[str] = "116680003"
INFERRED_RELATIONSHIP: Final[str] = "900000000000011006"
STATED_RELATIONSHIP: Final[str] = "900000000000010007"
EXISTENTIAL_RESTRICTION_MODIFIER: Final[str] = "900000000000451002"
