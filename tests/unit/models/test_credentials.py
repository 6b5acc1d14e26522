"""
Tests for credential models.
"""

from __future__ import annotations

import json

import pytest

from kickwatch.models.credentials import CredentialSet, ServerMetadata, TokenSet

RECORD = {
    "serverMetadata": {"issuer": "https://id.kick.com/"},
    "clientId": "",
    "clientSecret": "",
    "tokens": {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "token_type": "Bearer",
        "expires_at": 1_700_003_600,
    },
}


class TestTokenSet:
    def test_without_expiry_is_never_due(self) -> None:
        assert TokenSet(access_token="a").is_due_for_refresh(60, now=10**12) is False

    @pytest.mark.parametrize(
        "now,expected",
        [(1000, False), (1939, False), (1940, True), (5000, True)],
    )
    def test_due_within_skew(self, now: int, expected: bool) -> None:
        tokens = TokenSet(access_token="a", expires_at=2000)
        assert tokens.is_due_for_refresh(60, now=now) is expected

    def test_merge_keeps_old_refresh_token(self) -> None:
        current = TokenSet(access_token="a", refresh_token="r1", scope="user:read")
        merged = current.merged_with(
            TokenSet(access_token="b", expires_in=100), 7200, now=1000
        )

        assert merged.access_token == "b"
        assert merged.refresh_token == "r1"
        assert merged.expires_at == 1100

    def test_merge_prefers_new_refresh_token_and_explicit_expiry(self) -> None:
        current = TokenSet(access_token="a", refresh_token="r1")
        merged = current.merged_with(
            TokenSet(access_token="b", refresh_token="r2", expires_at=5000), 7200, now=1000
        )

        assert merged.refresh_token == "r2"
        assert merged.expires_at == 5000

    def test_merge_defaults_lifetime(self) -> None:
        merged = TokenSet(refresh_token="r1").merged_with(
            TokenSet(access_token="b"), 7200, now=1000
        )
        assert merged.expires_at == 8200

    def test_unknown_fields_are_kept(self) -> None:
        tokens = TokenSet.model_validate({"access_token": "a", "custom": "x"})
        assert tokens.model_dump()["custom"] == "x"


class TestCredentialSet:
    def test_record_round_trip(self) -> None:
        credentials = CredentialSet.from_mapping(RECORD)

        assert credentials.server_metadata.issuer == "https://id.kick.com/"
        assert credentials.tokens.access_token == "access-1"
        assert credentials.to_record() == RECORD

    def test_to_json_is_indented_record(self) -> None:
        credentials = CredentialSet.from_mapping(RECORD)
        text = credentials.to_json()

        assert json.loads(text) == RECORD
        assert "\n  " in text

    def test_populate_by_field_name(self) -> None:
        credentials = CredentialSet(server_metadata=ServerMetadata(issuer="x"))
        assert credentials.to_record()["serverMetadata"] == {"issuer": "x"}

    def test_with_tokens_returns_copy(self) -> None:
        credentials = CredentialSet.from_mapping(RECORD)
        updated = credentials.with_tokens(TokenSet(access_token="new"))

        assert updated.tokens.access_token == "new"
        assert credentials.tokens.access_token == "access-1"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (RECORD, True),
            ({**RECORD, "clientId": None}, False),
            ({k: v for k, v in RECORD.items() if k != "tokens"}, False),
            ("not a mapping", False),
            (None, False),
        ],
    )
    def test_is_valid_record(self, value, expected: bool) -> None:
        assert CredentialSet.is_valid_record(value) is expected
