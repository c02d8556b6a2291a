"""
Serial numbers and validity periods
"""

import calendar
import secrets
from datetime import MAXYEAR, MINYEAR, datetime, timedelta, timezone
from typing import Optional, Tuple, Union

from twinpki.core.exceptions import EncodingFailure
from twinpki.pki import asn1

SERIAL_NUMBER_BYTES = 20


def generate_serial_number() -> bytes:
    """20 random bytes from the OS CSPRNG"""
    return secrets.token_bytes(SERIAL_NUMBER_BYTES)


def serial_to_int(serial_number: Union[bytes, int]) -> int:
    """Read serial bytes as an unsigned big-endian integer"""
    if isinstance(serial_number, int):
        if serial_number < 0:
            raise EncodingFailure("Serial number must not be negative")
        return serial_number
    if not isinstance(serial_number, (bytes, bytearray)) or not serial_number:
        raise EncodingFailure("Serial number must be non-empty bytes or an integer")
    return int.from_bytes(serial_number, "big")


def utc_now() -> datetime:
    """Current UTC time truncated to the second"""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def asn1_time_string(value: datetime) -> str:
    """
    YYMMDDHHMMSSZ (UTCTime) for years 1950 through 2049, YYYYMMDDHHMMSSZ
    (GeneralizedTime) otherwise. Naive datetimes are taken as UTC.
    """
    value = _as_utc(value)
    stamp = f"{value.month:02d}{value.day:02d}{value.hour:02d}{value.minute:02d}{value.second:02d}Z"
    if 1950 <= value.year <= 2049:
        return f"{value.year % 100:02d}{stamp}"
    return f"{value.year:04d}{stamp}"


def date_to_asn1_time(value: datetime) -> asn1.Time:
    """Time CHOICE whose tag matches the string format of asn1_time_string"""
    text = asn1_time_string(value)
    if len(text) == 13:
        return asn1.Time(name="utc_time", value=text)
    return asn1.Time(name="general_time", value=text)


def _require_positive_int(value, unit: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise EncodingFailure(f"Validity must be a positive number of {unit}, got {value!r}")


def add_years(value: datetime, years: int) -> datetime:
    """Same calendar date ``years`` later; 29 February falls back to the 28th"""
    if isinstance(years, bool) or not isinstance(years, int):
        raise EncodingFailure(f"Years must be an integer, got {years!r}")
    year = value.year + years
    if not MINYEAR <= year <= MAXYEAR:
        raise EncodingFailure(f"Year {year} is outside the representable range")
    if value.month == 2 and value.day == 29 and not calendar.isleap(year):
        value = value.replace(day=28)
    return value.replace(year=year)


def years_to_days(years: int, start: Optional[datetime] = None) -> int:
    _require_positive_int(years, "years")
    if start is None:
        start = utc_now()
    return (add_years(start, years) - start).days


def validity_window(
    validity_days: int,
    not_before: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Return (notBefore, notAfter) with notAfter = notBefore + validity_days.

    Raises:
        EncodingFailure: validity_days is not a positive integer
    """
    _require_positive_int(validity_days, "days")

    if not_before is None:
        not_before = utc_now()
    else:
        not_before = _as_utc(not_before).replace(microsecond=0)

    try:
        not_after = not_before + timedelta(days=validity_days)
    except OverflowError as e:
        raise EncodingFailure(f"Validity of {validity_days} days runs past the representable range") from e
    return not_before, not_after
