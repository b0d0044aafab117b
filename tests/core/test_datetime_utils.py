from datetime import timedelta

import pytest

from app.core.datetime_utils import InvalidDurationError, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("168h", timedelta(hours=168)),
            ("24h", timedelta(hours=24)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("90s", timedelta(seconds=90)),
            ("500ms", timedelta(milliseconds=500)),
            ("1.5h", timedelta(minutes=90)),
            ("0", timedelta(0)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "7d", "h", "10", "-5m", "1h 30m", "abc"])
    def test_invalid(self, value):
        with pytest.raises(InvalidDurationError):
            parse_duration(value)

    def test_invalid_duration_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_duration("forever")
