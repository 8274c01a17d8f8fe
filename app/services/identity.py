"""Anonymous identity generation."""

from __future__ import annotations

import secrets
import time
from typing import Callable

IDENTITY_PREFIX = "anon"
RANDOM_BYTES = 16


class IdentityGenerator:
    """Produce opaque, unguessable identifiers for anonymous callers.

    Identities look like ``anon_<ms since epoch>_<32 hex chars>``. The
    timestamp keeps them roughly sortable by creation time and the random
    suffix carries 128 bits from the OS CSPRNG.
    """

    def __init__(
        self,
        *,
        prefix: str = IDENTITY_PREFIX,
        random_bytes: int = RANDOM_BYTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if random_bytes < RANDOM_BYTES:
            raise ValueError(f"random_bytes must be >= {RANDOM_BYTES}")
        if not prefix:
            raise ValueError("prefix must be a non-empty string")

        self._prefix = prefix
        self._random_bytes = random_bytes
        self._clock = clock

    def generate(self) -> str:
        timestamp_ms = int(self._clock() * 1000)
        return f"{self._prefix}_{timestamp_ms}_{secrets.token_hex(self._random_bytes)}"
