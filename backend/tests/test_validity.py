from datetime import datetime, timedelta, timezone

import pytest

from twinpki.core.exceptions import EncodingFailure
from twinpki.pki.validity import (
    add_years,
    asn1_time_string,
    date_to_asn1_time,
    generate_serial_number,
    serial_to_int,
    validity_window,
    years_to_days,
)


def test_serials_are_twenty_random_bytes():
    serials = [generate_serial_number() for _ in range(1000)]
    assert all(len(serial) == 20 for serial in serials)
    assert len(set(serials)) == 1000


def test_serial_to_int_is_unsigned():
    assert serial_to_int(b"\xff" * 20) == 2 ** 160 - 1
    assert serial_to_int(b"\x00\x01") == 1
    assert serial_to_int(7) == 7
    with pytest.raises(EncodingFailure):
        serial_to_int(-1)
    with pytest.raises(EncodingFailure):
        serial_to_int(b"")


def test_utc_time_format():
    value = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert asn1_time_string(value) == "250102030405Z"
    assert date_to_asn1_time(value).name == "utc_time"


def test_generalized_time_outside_utc_time_range():
    assert asn1_time_string(datetime(2050, 1, 1, tzinfo=timezone.utc)) == "20500101000000Z"
    assert asn1_time_string(datetime(1949, 12, 31, 23, 59, 59, tzinfo=timezone.utc)) == "19491231235959Z"
    assert date_to_asn1_time(datetime(2050, 1, 1, tzinfo=timezone.utc)).name == "general_time"


def test_utc_time_range_bounds():
    assert asn1_time_string(datetime(1950, 1, 1, tzinfo=timezone.utc)) == "500101000000Z"
    assert asn1_time_string(datetime(2049, 12, 31, 23, 59, 59, tzinfo=timezone.utc)) == "491231235959Z"


def test_naive_datetime_is_utc_and_offsets_are_normalized():
    naive = datetime(2030, 6, 1, 12, 0, 0)
    assert asn1_time_string(naive) == "300601120000Z"
    tokyo = timezone(timedelta(hours=9))
    assert asn1_time_string(datetime(2030, 6, 1, 21, 0, 0, tzinfo=tokyo)) == "300601120000Z"


def test_validity_window_length():
    not_before, not_after = validity_window(365)
    assert not_after - not_before == timedelta(days=365)
    assert not_before.microsecond == 0
    assert not_before.tzinfo is not None


def test_validity_window_with_start():
    start = datetime(2049, 6, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
    not_before, not_after = validity_window(730, start)
    assert not_before == datetime(2049, 6, 1, tzinfo=timezone.utc)
    assert not_after == datetime(2051, 6, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("days", [0, -1, True, 1.5])
def test_validity_must_be_positive(days):
    with pytest.raises(EncodingFailure):
        validity_window(days)


def test_add_years_handles_leap_day():
    assert add_years(datetime(2024, 2, 29), 1) == datetime(2025, 2, 28)
    assert add_years(datetime(2024, 3, 1), 20) == datetime(2044, 3, 1)


@pytest.mark.parametrize("years", [0, -2, True, 1.5, "10"])
def test_years_must_be_positive_integer(years):
    with pytest.raises(EncodingFailure):
        years_to_days(years)


def test_years_to_days_counts_leap_days():
    assert years_to_days(1, datetime(2024, 1, 1, tzinfo=timezone.utc)) == 366
    assert years_to_days(20, datetime(2025, 6, 1, tzinfo=timezone.utc)) == 7305


def test_add_years_out_of_range_raises():
    with pytest.raises(EncodingFailure):
        add_years(datetime(9990, 1, 1), 20)
