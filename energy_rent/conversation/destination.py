"""Destination address grammar: fixed prefix, fixed length, restricted alphabet."""

import re
from typing import Optional

from energy_rent.core.errors import InvalidDestination
from energy_rent.core.settings import DestinationSettings


class DestinationValidator:
    """Validates delegation addresses (TRON style by default: T + 33 chars)."""

    def __init__(self, settings: Optional[DestinationSettings] = None):
        self.settings = settings or DestinationSettings()
        body_length = self.settings.length - len(self.settings.prefix)
        self._pattern = re.compile(
            rf"{re.escape(self.settings.prefix)}{self.settings.body_pattern}{{{body_length}}}"
        )

    @property
    def expected(self) -> str:
        return f"{self.settings.length} characters starting with '{self.settings.prefix}'"

    def is_valid(self, text: str) -> bool:
        return self._pattern.fullmatch(text or "") is not None

    def validate(self, text: str) -> str:
        """Return the stripped address or raise InvalidDestination."""
        candidate = (text or "").strip()
        if not self.is_valid(candidate):
            raise InvalidDestination(candidate, self.expected)
        return candidate
