from datetime import datetime, timedelta, timezone

import govcord.util.format_utils as format_utils


def test_humanize_timestamp_from_unix_seconds():
    value = int(datetime(2025, 1, 3, 12, 34, tzinfo=timezone.utc).timestamp())

    assert format_utils.humanize_timestamp(value) == "2025-01-03 12:34 UTC"


def test_humanize_timestamp_converts_naive_to_utc():
    naive_value = datetime(2025, 1, 3, 12, 34, 56)

    assert format_utils.humanize_timestamp(naive_value) == "2025-01-03 12:34 UTC"


def test_humanize_timestamp_normalizes_timezones():
    eastern = timezone(timedelta(hours=-5))
    aware_value = datetime(2024, 1, 1, 7, 30, tzinfo=eastern)

    assert format_utils.humanize_timestamp(aware_value) == "2024-01-01 12:30 UTC"


def test_humanize_timestamp_handles_missing_values():
    assert format_utils.humanize_timestamp(None) == "not set"


def test_whole_days_between_truncates_and_never_goes_negative():
    day = format_utils.SECONDS_PER_DAY

    assert format_utils.whole_days_between(0, 7 * day - 1) == 6
    assert format_utils.whole_days_between(0, 7 * day) == 7
    assert format_utils.whole_days_between(10, 0) == 0


def test_hours_between():
    assert format_utils.hours_between(0, 90 * 60) == 1.5


def test_percentage_rounds_and_handles_empty_totals():
    assert format_utils.percentage(1, 3) == 33
    assert format_utils.percentage(2, 3) == 67
    assert format_utils.percentage(5, 0) == 0
