from datetime import date, datetime, timezone

import pytest

from LifeMap.dates import normalize_date, parse_date, sanitize_date_input, to_canonical, today_canonical

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw, expected", [
    ("2024.03.05", "2024.03.05"),
    ("2024-03-05", "2024.03.05"),
    ("2024/03/05", "20240305"),
    ("  2024.3.5 ", "2024.3.5"),
    ("abc", ""),
])
def test_sanitize_date_input(raw, expected):
    assert sanitize_date_input(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("2021-05-04", "2021.05.04"),
    ("2021.05.04", "2021.05.04"),
    ("", ""),
    (None, ""),
])
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_parse_date_accepts_both_separators():
    assert parse_date("2022.01.01", NOW) == datetime(2022, 1, 1, tzinfo=timezone.utc)
    assert parse_date("2022-01-01", NOW) == datetime(2022, 1, 1, tzinfo=timezone.utc)


def test_parse_date_partial_dates():
    assert parse_date("2019.07", NOW) == datetime(2019, 7, 1, tzinfo=timezone.utc)
    assert parse_date("2019", NOW).year == 2019


@pytest.mark.parametrize("raw", ["not a date", "2024.13.40", "", None])
def test_parse_date_falls_back_to_now(raw):
    assert parse_date(raw, NOW) is NOW


def test_canonical_formatting():
    assert to_canonical(date(2024, 1, 9)) == "2024.01.09"
    assert today_canonical(NOW) == "2024.05.01"
