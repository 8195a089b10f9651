"""
verifier/code_normalizer.py

Normalization and pattern validation for registration codes.

Codes arrive from copy-paste in all shapes: lowercase, padded with spaces,
with typographic dashes. Everything is mapped onto `AVAL-<digits>` before
validation; invalid codes never reach the browser.
"""

import re
from typing import Any

from libs.core.exceptions import PatternError

CODE_PREFIX = "AVAL-"

# Hyphen, non-breaking hyphen, figure dash, en/em dash, horizontal bar, minus
_DASH_VARIANTS = re.compile("[\u2010-\u2015\u2212]")
_DISALLOWED = re.compile(r"[^A-Z0-9-]")


def normalize_code(raw: Any) -> str:
    """
    Normalize raw client input into candidate code form.

    Trim, uppercase, map Unicode dash variants to "-", then drop every
    character outside [A-Z0-9-]. Never raises.

    >>> normalize_code(" aval‑000000001 ")
    'AVAL-000000001'
    """
    text = "" if raw is None else str(raw)
    text = text.strip().upper()
    text = _DASH_VARIANTS.sub("-", text)
    return _DISALLOWED.sub("", text)


class CodePattern:
    """`AVAL-` followed by a configurable number of digits."""

    def __init__(self, min_digits: int = 9, max_digits: int = 11):
        if min_digits < 1 or max_digits < min_digits:
            raise ValueError(f"Invalid digit bounds: {min_digits}..{max_digits}")
        self.min_digits = min_digits
        self.max_digits = max_digits
        self._regex = re.compile(
            rf"^{re.escape(CODE_PREFIX)}[0-9]{{{min_digits},{max_digits}}}$"
        )

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def matches(self, code: str) -> bool:
        return bool(self._regex.match(code))

    def validate(self, code: str) -> str:
        """Return the code unchanged, or raise PatternError."""
        if not self.matches(code):
            raise PatternError(code, context={"pattern": self.pattern})
        return code

    def __repr__(self) -> str:
        return f"CodePattern({self.min_digits}, {self.max_digits})"
