"""Random identifiers for requests and synthesized tool calls."""

from __future__ import annotations

import secrets
import string
from typing import Callable

ALPHABET = string.ascii_letters + string.digits

IdFactory = Callable[[], str]


def random_id(size: int = 24) -> str:
    """Return a URL-safe alphanumeric id from a CSPRNG."""
    return "".join(secrets.choice(ALPHABET) for _ in range(size))


def tool_call_id() -> str:
    return f"call_{random_id()}"
