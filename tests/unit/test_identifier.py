"""Tests for resource identifiers."""

from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from docledger.errors import InvalidInputError
from docledger.models.identifier import (
    EMPTY_IDENTIFIER,
    identifiers_equal,
    is_empty_identifier,
    new_identifier,
    parse_identifier,
)


class TestIdentifier:
    def test_new_identifier_is_canonical(self):
        value = new_identifier()
        assert len(value) == 36
        assert parse_identifier(value) == value
        assert value[14] == "4"

    def test_new_identifiers_differ(self):
        assert new_identifier() != new_identifier()

    def test_empty_identifier(self):
        assert EMPTY_IDENTIFIER == "00000000-0000-0000-0000-000000000000"
        assert is_empty_identifier(EMPTY_IDENTIFIER)
        assert not is_empty_identifier(new_identifier())

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "not-a-uuid",
            "11111111-1111-4111-8111-11111111111",
            "11111111111141118111111111111111",
            "AAAAAAAA-1111-4111-8111-111111111111",
            " 11111111-1111-4111-8111-111111111111",
        ],
    )
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(InvalidInputError):
            parse_identifier(text)

    def test_equality_is_string_equality(self):
        value = new_identifier()
        assert identifiers_equal(value, str(value))
        assert not identifiers_equal(value, new_identifier())

    @given(st.uuids())
    def test_round_trip(self, value):
        text = str(value)
        assert parse_identifier(text) == text
