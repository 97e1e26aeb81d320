"""
Tests for core helper functions.
"""

from datetime import date, datetime, timezone

import pytest

from core.helpers import add_months, hash_string


class TestAddMonths:
    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (date(2024, 1, 15), 1, date(2024, 2, 15)),
            (date(2024, 1, 31), 1, date(2024, 2, 29)),
            (date(2023, 1, 31), 1, date(2023, 2, 28)),
            (date(2024, 3, 31), 1, date(2024, 4, 30)),
            (date(2024, 11, 30), 3, date(2025, 2, 28)),
            (date(2024, 5, 10), 0, date(2024, 5, 10)),
            (date(2024, 1, 10), 24, date(2026, 1, 10)),
        ],
    )
    def test_clamps_to_month_end(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_preserves_time_and_tzinfo(self):
        moment = datetime(2024, 1, 31, 9, 30, tzinfo=timezone.utc)

        assert add_months(moment, 1) == datetime(2024, 2, 29, 9, 30, tzinfo=timezone.utc)


class TestHashString:
    def test_sha256_of_text(self):
        assert hash_string("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_bytes_and_text_agree(self):
        assert hash_string(b"payload", "sha512") == hash_string("payload", "sha512")
