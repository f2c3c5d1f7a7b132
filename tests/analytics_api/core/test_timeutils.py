from datetime import datetime, timedelta, timezone

import pytest

from analytics_api.core.timeutils import parse_duration, subtract_clamped, to_naive_utc

DEFAULT = timedelta(minutes=10)


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('30s', timedelta(seconds=30)),
        ('10m', timedelta(minutes=10)),
        ('2H', timedelta(hours=2)),
        ('1 d', timedelta(days=1)),
        (' 5m ', timedelta(minutes=5)),
        ('', DEFAULT),
        (None, DEFAULT),
        ('10', DEFAULT),
        ('-5m', DEFAULT),
        ('1.5h', DEFAULT),
        ('10w', DEFAULT),
    ],
)
def test_parse_duration(value, expected: timedelta) -> None:
    assert parse_duration(value, DEFAULT) == expected


@pytest.mark.parametrize('value', ['99999999999d', '9' * 5000 + 's'])
def test_parse_duration_caps_oversized_amounts(value: str) -> None:
    assert parse_duration(value, DEFAULT) == timedelta.max


def test_subtract_clamped() -> None:
    now = datetime(2025, 1, 1, 12, 0)

    assert subtract_clamped(now, timedelta(hours=2)) == datetime(2025, 1, 1, 10, 0)
    assert subtract_clamped(now, timedelta(days=800000)) == datetime.min
    assert subtract_clamped(now, timedelta.max) == datetime.min


def test_to_naive_utc() -> None:
    aware = datetime(2025, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_naive_utc(aware) == datetime(2025, 1, 1, 0, 0)
    assert to_naive_utc(datetime(2025, 1, 1, 3, 0)) == datetime(2025, 1, 1, 3, 0)
