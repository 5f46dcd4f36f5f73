"""Resource and revision identifiers.

Identifiers are 128-bit random values rendered as the canonical dashed,
lowercase 36-character form. The all-zero value is reserved as "empty".
"""

from __future__ import annotations

import re
import uuid
from typing import Annotated

from pydantic import AfterValidator

from docledger.errors import InvalidInputError

EMPTY_IDENTIFIER = "00000000-0000-0000-0000-000000000000"

_LAYOUT = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


def new_identifier() -> str:
    """Return a fresh random (version 4) identifier."""
    return str(uuid.uuid4())


def parse_identifier(text: str) -> str:
    """Validate *text* as a canonical identifier and return it.

    Raises
    ------
    InvalidInputError
        If *text* is not exactly the lowercase dashed 36-character layout.
    """
    if not isinstance(text, str) or _LAYOUT.fullmatch(text) is None:
        raise InvalidInputError(f"invalid identifier: {text!r}")
    return text


def is_empty_identifier(value: str) -> bool:
    return value == EMPTY_IDENTIFIER


def identifiers_equal(a: str, b: str) -> bool:
    return a == b


def _validate(value: str) -> str:
    if _LAYOUT.fullmatch(value) is None:
        raise ValueError(f"invalid identifier: {value!r}")
    return value


Identifier = Annotated[str, AfterValidator(_validate)]
