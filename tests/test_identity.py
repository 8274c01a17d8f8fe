"""Unit tests for anonymous identity generation."""

import re
from unittest.mock import Mock

import pytest

from app.services.identity import IdentityGenerator

IDENTITY_RE = re.compile(r"^anon_(\d+)_([0-9a-f]{32})$")


def test_identity_format() -> None:
    generator = IdentityGenerator(clock=Mock(return_value=1_700_000_000.123))

    identity = generator.generate()

    match = IDENTITY_RE.match(identity)
    assert match is not None
    assert match.group(1) == "1700000000123"


def test_identities_are_unique_with_frozen_clock() -> None:
    generator = IdentityGenerator(clock=Mock(return_value=1_700_000_000.0))

    identities = {generator.generate() for _ in range(1_000_000)}

    assert len(identities) == 1_000_000


def test_consecutive_calls_differ() -> None:
    generator = IdentityGenerator()

    assert generator.generate() != generator.generate()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"random_bytes": 8},
        {"prefix": ""},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        IdentityGenerator(**kwargs)
