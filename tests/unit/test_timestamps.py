"""
liteorm - Timestamp Unit Tests

Tests local time formatting for auto-stamped columns.
"""

from datetime import datetime

import pytest
from freezegun import freeze_time

from liteorm.utils.timestamps import (
    TIME_FORMATS,
    format_timestamp,
    get_local_time_string,
    get_time_format,
    set_time_format,
)

MOMENT = datetime(2024, 3, 15, 10, 30, 5)


class TestFormatTimestamp:
    """Test format_timestamp() for every format name."""

    @pytest.mark.parametrize("time_format,expected", [
        ('datetime', '2024-03-15 10:30:05'),
        ('date', '2024-03-15'),
        ('time', '10:30:05'),
        ('iso', '2024-03-15T10:30:05'),
    ])
    def test_formats(self, time_format, expected):
        """Each named format should render the moment as documented."""
        assert format_timestamp(MOMENT, time_format) == expected

    def test_timestamp_is_epoch_milliseconds(self):
        """'timestamp' should render integer epoch milliseconds."""
        rendered = format_timestamp(MOMENT, 'timestamp')

        assert rendered.isdigit()
        assert int(rendered) == int(MOMENT.timestamp() * 1000)


class TestTimeFormatSetting:
    """Test the global time format."""

    def test_default_format(self):
        """The default format should be 'datetime'."""
        assert get_time_format() == 'datetime'

    def test_set_time_format(self):
        """set_time_format() should accept every known format."""
        for time_format in TIME_FORMATS:
            set_time_format(time_format)
            assert get_time_format() == time_format

    def test_set_unknown_format_raises(self):
        """set_time_format() should reject unknown names."""
        with pytest.raises(ValueError):
            set_time_format('fortnight')

    @freeze_time("2024-03-15 10:30:05")
    def test_local_time_string_uses_global_format(self):
        """get_local_time_string() should format the current time with the global format."""
        assert get_local_time_string() == '2024-03-15 10:30:05'

        set_time_format('date')
        assert get_local_time_string() == '2024-03-15'

    @freeze_time("2024-03-15 10:30:05")
    def test_local_time_string_explicit_format(self):
        """An explicit format should override the global one."""
        assert get_local_time_string('time') == '10:30:05'
