"""Tests for source code lookups and trigger auth helpers."""

import pytest

from leadsync.security import bearer_token_matches
from leadsync.services.code_mappings import (
    map_status_code,
    map_treatment_code,
    normalize_circle,
    normalize_source,
)


class TestCodeMappings:
    """Tests for numeric code decoding."""

    def test_status_codes(self):
        assert map_status_code("5") == "DNP-2"
        assert map_status_code(" 27 ") == "New Lead"
        assert map_status_code("999") == "999"
        assert map_status_code("Hot Lead") == "Hot Lead"
        assert map_status_code(None) is None

    def test_treatment_codes(self):
        assert map_treatment_code(5) == "Breast Lump"
        assert map_treatment_code("Piles") == "Piles"
        assert map_treatment_code("  ") is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1", "Facebook"),
            ("58", "Dr. Sahil (campaign)"),
            ("27", "Unknown"),
            ("412", "Unknown"),
            ("", "Unknown"),
            (None, "Unknown"),
            ("Walk-in", "Walk-in"),
        ],
    )
    def test_normalize_source(self, value, expected):
        assert normalize_source(value) == expected

    def test_normalize_circle(self):
        assert normalize_circle(" north ") == "North"
        assert normalize_circle("Mars") is None
        assert normalize_circle(None) is None


class TestBearerToken:
    """Tests for sync trigger token checks."""

    def test_matches(self):
        assert bearer_token_matches("Bearer s3cret", "s3cret")
        assert bearer_token_matches("bearer s3cret", "s3cret")

    @pytest.mark.parametrize("header", [None, "", "s3cret", "Basic s3cret", "Bearer ", "Bearer other"])
    def test_rejects(self, header):
        assert not bearer_token_matches(header, "s3cret")
