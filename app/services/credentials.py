"""Stateless signed bearer credentials for anonymous identities.

Tokens are HS256 JWTs (``header.payload.signature``) produced by PyJWT:

- header: ``{"alg": "HS256", "typ": "JWT"}``
- payload: ``{"userId", "iat", "exp", "type"}`` with epoch-second timestamps

Nothing is stored server side, so a leaked token stays valid until ``exp``.
Expiry and kind are checked here against the injected ``now`` rather than by
PyJWT, which would read the wall clock.
"""

from __future__ import annotations

import binascii
import re
from dataclasses import dataclass
from typing import Any

import jwt
from jwt.utils import base64url_decode, base64url_encode

from app.core.errors import (
    BadSignatureError,
    ExpiredTokenError,
    MalformedTokenError,
    WrongKindError,
)

ALGORITHM = "HS256"
ANONYMOUS_KIND = "anonymous"
SEPARATOR = "."

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")

# Clock-dependent claims are checked by the codec itself.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_aud": False,
    "verify_iss": False,
}


@dataclass(frozen=True)
class CredentialPayload:
    """Decoded credential claims.

    Attributes:
        identity: Anonymous identity the token vouches for.
        issued_at: Epoch seconds at issuance.
        expires_at: Epoch seconds after which the token is rejected.
        kind: Credential kind marker (always ``anonymous`` when issued here).
    """

    identity: str
    issued_at: int
    expires_at: int
    kind: str = ANONYMOUS_KIND

    def to_claims(self) -> dict[str, Any]:
        return {
            "userId": self.identity,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "type": self.kind,
        }


@dataclass(frozen=True)
class IssuedCredential:
    """A freshly signed token together with its claims."""

    token: str
    payload: CredentialPayload


def _malformed(message: str) -> MalformedTokenError:
    return MalformedTokenError(code="malformed_token", message=message)


def _bad_signature(message: str) -> BadSignatureError:
    return BadSignatureError(code="bad_signature", message=message)


def _split(token: str) -> list[str]:
    """Return the three segments of a compact token.

    Raises:
        MalformedTokenError: Wrong segment count, an empty segment, or a
            header or payload outside the base64url alphabet.
    """
    segments = token.split(SEPARATOR) if token else []
    if len(segments) != 3 or not all(segments):
        raise _malformed("Token must have three non-empty segments")
    if not all(_SEGMENT.fullmatch(s) for s in segments[:2]):
        raise _malformed("Token header and payload must be base64url")
    return segments


def _check_canonical_signature(segment: str) -> None:
    # PyJWT's decoder ignores the unused trailing bits, so two spellings of
    # one signature would both verify.
    if not _SEGMENT.fullmatch(segment):
        raise _bad_signature("Token signature is not valid base64url")
    try:
        raw = base64url_decode(segment)
    except (binascii.Error, ValueError) as exc:
        raise _bad_signature("Token signature is not valid base64url") from exc
    if base64url_encode(raw).decode("ascii") != segment:
        raise _bad_signature("Token signature is not canonical base64url")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class CredentialCodec:
    """Issue and verify HMAC-signed anonymous credentials."""

    def __init__(self, secret: str | bytes, *, kind: str = ANONYMOUS_KIND) -> None:
        """Initialize the codec.

        Args:
            secret: Server-held signing secret.
            kind: Credential kind marker written into and required on tokens.

        Raises:
            ValueError: If the secret is empty.
        """
        key = secret.encode("utf-8") if isinstance(secret, str) else secret
        if not key:
            raise ValueError("secret must be non-empty")

        self._key = key
        self._kind = kind

    def issue(self, identity: str, now: int, ttl: int) -> IssuedCredential:
        """Sign a credential for ``identity`` valid from ``now`` for ``ttl`` seconds."""
        if not identity:
            raise ValueError("identity must be a non-empty string")
        if ttl < 1:
            raise ValueError("ttl must be >= 1")

        payload = CredentialPayload(
            identity=identity,
            issued_at=int(now),
            expires_at=int(now) + int(ttl),
            kind=self._kind,
        )
        token = jwt.encode(payload.to_claims(), self._key, algorithm=ALGORITHM)
        return IssuedCredential(token=token, payload=payload)

    def verify(self, token: str, now: int) -> CredentialPayload:
        """Verify a token and return its claims.

        Checks run in a fixed order: shape, signature encoding, header,
        signature, claims, expiry, kind. The payload is only decoded after
        the signature has been checked.

        Args:
            token: Compact token string.
            now: Current epoch seconds.

        Returns:
            The decoded CredentialPayload.

        Raises:
            MalformedTokenError: Bad shape, undecodable header or payload,
                unsupported algorithm, or missing claims.
            BadSignatureError: Signature mismatch or undecodable signature.
            ExpiredTokenError: ``exp`` lies before ``now``.
            WrongKindError: ``type`` is not the expected marker.
        """
        signature = _split(token)[2]
        # Before PyJWT parses the token: its parser decodes the signature too.
        _check_canonical_signature(signature)

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise _malformed("Token header is not valid base64url JSON") from exc
        if header.get("alg") != ALGORITHM:
            raise _malformed("Unsupported token algorithm")

        try:
            claims = jwt.decode(token, self._key, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
        except jwt.InvalidSignatureError as exc:
            raise _bad_signature("Token signature mismatch") from exc
        except jwt.InvalidTokenError as exc:
            raise _malformed("Token payload is not valid base64url JSON") from exc

        identity = claims.get("userId")
        issued_at = claims.get("iat")
        expires_at = claims.get("exp")
        kind = claims.get("type")
        if (
            not isinstance(identity, str)
            or not identity
            or not _is_int(issued_at)
            or not _is_int(expires_at)
            or not isinstance(kind, str)
        ):
            raise _malformed("Token payload is missing required claims")

        if expires_at < now:
            raise ExpiredTokenError(
                code="token_expired",
                message="Token has expired",
            )

        if kind != self._kind:
            raise WrongKindError(
                code="wrong_token_kind",
                message="Token is not an anonymous credential",
            )

        return CredentialPayload(
            identity=identity,
            issued_at=issued_at,
            expires_at=expires_at,
            kind=kind,
        )
