"""
Remembered external-account choice.

A user's answer to "pay now or bill later?" can be remembered for a number
of days. It is stored in a single user property as two pipe-separated fields:

    true|1735689600000
    ^    ^
    |    expiry, epoch milliseconds
    choice (true = use the external account)

Anything that doesn't parse, and anything already expired, loads as None.
"No preference recorded" and "garbage in the property" both mean "ask again".
"""

import time
from dataclasses import dataclass

from printpolicy.errors import ChoiceTokenError

MILLIS_PER_DAY = 24 * 60 * 60 * 1000

_TRUE = "true"
_FALSE = "false"


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChoiceToken:
    """
    A remembered choice and when it stops applying.

    Attributes:
        value: True to bill the external account, False to bill later
        expires_at_ms: Epoch milliseconds after which the choice is ignored
    """

    value: bool
    expires_at_ms: int

    @classmethod
    def remember(
        cls,
        value: bool,
        days: int,
        now_ms: int | None = None,
    ) -> "ChoiceToken":
        """Create a token that expires ``days`` days from now."""
        start = now_millis() if now_ms is None else now_ms
        return cls(value=value, expires_at_ms=start + days * MILLIS_PER_DAY)

    @classmethod
    def parse_strict(cls, raw: str) -> "ChoiceToken":
        """
        Parse a stored token without checking expiry.

        Raises:
            ChoiceTokenError: If the text isn't two valid fields
        """
        parts = raw.strip().split("|")
        if len(parts) != 2:
            raise ChoiceTokenError(token=raw, reason="expected two fields")

        flag, expiry = parts[0].strip().lower(), parts[1].strip()
        if flag not in (_TRUE, _FALSE):
            raise ChoiceTokenError(token=raw, reason=f"bad value {parts[0]!r}")
        if not (expiry.isascii() and expiry.isdigit()):
            raise ChoiceTokenError(token=raw, reason=f"bad expiry {parts[1]!r}")

        return cls(value=flag == _TRUE, expires_at_ms=int(expiry))

    @classmethod
    def load(cls, raw: str | None, now_ms: int | None = None) -> "ChoiceToken | None":
        """
        Parse a stored token, returning None if it's missing, bad or expired.
        """
        if not raw:
            return None
        try:
            token = cls.parse_strict(raw)
        except ChoiceTokenError:
            return None
        if token.is_expired(now_ms):
            return None
        return token

    def is_expired(self, now_ms: int | None = None) -> bool:
        current = now_millis() if now_ms is None else now_ms
        return self.expires_at_ms <= current

    def serialize(self) -> str:
        """Format for storage in the user property."""
        return f"{_TRUE if self.value else _FALSE}|{self.expires_at_ms}"

    def __str__(self) -> str:
        return self.serialize()
