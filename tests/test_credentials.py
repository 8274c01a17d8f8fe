"""Unit tests for the anonymous credential codec."""

import base64
import json

import jwt
import pytest

from app.core.errors import (
    AuthenticationAppError,
    BadSignatureError,
    CredentialError,
    ExpiredTokenError,
    MalformedTokenError,
    WrongKindError,
)
from app.services.credentials import CredentialCodec

NOW = 1_700_000_000
TTL = 30 * 24 * 60 * 60


def _b64(obj: dict) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


@pytest.fixture
def codec() -> CredentialCodec:
    return CredentialCodec("unit-test-secret")


class TestIssue:
    def test_token_has_three_segments(self, codec: CredentialCodec) -> None:
        issued = codec.issue("anon_x", NOW, TTL)

        header, payload, signature = issued.token.split(".")
        assert header and payload and signature
        assert "=" not in issued.token

    def test_payload_claims(self, codec: CredentialCodec) -> None:
        issued = codec.issue("anon_x", NOW, TTL)

        assert issued.payload.identity == "anon_x"
        assert issued.payload.issued_at == NOW
        assert issued.payload.expires_at == NOW + TTL
        assert issued.payload.kind == "anonymous"

    def test_header_declares_hs256(self, codec: CredentialCodec) -> None:
        header = codec.issue("anon_x", NOW, TTL).token.split(".")[0]
        decoded = json.loads(base64.urlsafe_b64decode(header + "=" * (-len(header) % 4)))

        assert decoded == {"alg": "HS256", "typ": "JWT"}

    def test_issue_is_deterministic(self, codec: CredentialCodec) -> None:
        assert codec.issue("anon_x", NOW, TTL).token == codec.issue("anon_x", NOW, TTL).token

    @pytest.mark.parametrize(("identity", "ttl"), [("", TTL), ("anon_x", 0)])
    def test_invalid_issue_args(self, codec: CredentialCodec, identity: str, ttl: int) -> None:
        with pytest.raises(ValueError):
            codec.issue(identity, NOW, ttl)

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            CredentialCodec("")


class TestVerify:
    @pytest.mark.parametrize("offset", [0, 1, TTL // 2, TTL - 1, TTL])
    def test_roundtrip_within_lifetime(self, codec: CredentialCodec, offset: int) -> None:
        token = codec.issue("anon_x", NOW, TTL).token

        payload = codec.verify(token, NOW + offset)

        assert payload.identity == "anon_x"
        assert payload.issued_at == NOW
        assert payload.expires_at == NOW + TTL

    def test_expired_after_ttl(self, codec: CredentialCodec) -> None:
        token = codec.issue("anon_x", NOW, TTL).token

        with pytest.raises(ExpiredTokenError):
            codec.verify(token, NOW + TTL + 1)

    def test_every_signature_character_is_checked(self, codec: CredentialCodec) -> None:
        token = codec.issue("anon_x", NOW, TTL).token
        head, _, signature = token.rpartition(".")

        for i, char in enumerate(signature):
            replacement = "A" if char != "A" else "B"
            tampered = f"{head}.{signature[:i]}{replacement}{signature[i + 1:]}"
            with pytest.raises(BadSignatureError):
                codec.verify(tampered, NOW)

    def test_tampered_payload_fails_signature(self, codec: CredentialCodec) -> None:
        header, _, signature = codec.issue("anon_x", NOW, TTL).token.split(".")
        forged = _b64({"userId": "anon_admin", "iat": NOW, "exp": NOW + TTL, "type": "anonymous"})

        with pytest.raises(BadSignatureError):
            codec.verify(f"{header}.{forged}.{signature}", NOW)

    def test_other_secret_fails_signature(self, codec: CredentialCodec) -> None:
        token = CredentialCodec("another-secret").issue("anon_x", NOW, TTL).token

        with pytest.raises(BadSignatureError):
            codec.verify(token, NOW)

    def test_signature_with_invalid_alphabet(self, codec: CredentialCodec) -> None:
        head, _, signature = codec.issue("anon_x", NOW, TTL).token.rpartition(".")

        with pytest.raises(BadSignatureError):
            codec.verify(f"{head}.{signature[:-1]}*", NOW)

    @pytest.mark.parametrize(
        "token",
        ["", "abc", "a.b", "a.b.c.d", "a..c", ".b.c", "a.b."],
    )
    def test_malformed_shape(self, codec: CredentialCodec, token: str) -> None:
        with pytest.raises(MalformedTokenError):
            codec.verify(token, NOW)

    def test_header_not_json(self, codec: CredentialCodec) -> None:
        _, payload, signature = codec.issue("anon_x", NOW, TTL).token.split(".")

        with pytest.raises(MalformedTokenError):
            codec.verify(f"bm90LWpzb24.{payload}.{signature}", NOW)

    def test_unsupported_algorithm(self, codec: CredentialCodec) -> None:
        _, payload, signature = codec.issue("anon_x", NOW, TTL).token.split(".")
        header = _b64({"alg": "none", "typ": "JWT"})

        with pytest.raises(MalformedTokenError):
            codec.verify(f"{header}.{payload}.{signature}", NOW)

    def test_wrong_kind(self) -> None:
        user_codec = CredentialCodec("unit-test-secret", kind="user")
        token = user_codec.issue("anon_x", NOW, TTL).token

        with pytest.raises(WrongKindError):
            CredentialCodec("unit-test-secret").verify(token, NOW)

    def test_expiry_checked_before_kind(self) -> None:
        token = CredentialCodec("unit-test-secret", kind="user").issue("anon_x", NOW, TTL).token

        with pytest.raises(ExpiredTokenError):
            CredentialCodec("unit-test-secret").verify(token, NOW + TTL + 1)

    def test_failures_are_authentication_errors(self, codec: CredentialCodec) -> None:
        with pytest.raises(CredentialError) as exc_info:
            codec.verify("a.b", NOW)

        assert isinstance(exc_info.value, AuthenticationAppError)

    @pytest.mark.parametrize(
        ("segment", "error"),
        [("header", MalformedTokenError), ("payload", MalformedTokenError), ("signature", BadSignatureError)],
    )
    def test_non_ascii_segment_is_rejected(self, codec: CredentialCodec, segment: str, error: type) -> None:
        parts = dict(zip(("header", "payload", "signature"), codec.issue("anon_x", NOW, TTL).token.split(".")))
        parts[segment] += "é"

        with pytest.raises(error):
            codec.verify(".".join(parts.values()), NOW)

    def test_accepts_tokens_signed_by_other_hs256_issuers(self, codec: CredentialCodec) -> None:
        claims = {"userId": "anon_x", "iat": NOW, "exp": NOW + TTL, "type": "anonymous"}
        token = jwt.encode(claims, "unit-test-secret", algorithm="HS256")

        assert codec.verify(token, NOW).identity == "anon_x"

    def test_missing_claims_are_malformed(self, codec: CredentialCodec) -> None:
        token = jwt.encode({"userId": "anon_x", "iat": NOW}, "unit-test-secret", algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            codec.verify(token, NOW)
