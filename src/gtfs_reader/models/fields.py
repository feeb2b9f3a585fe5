"""Scalar GTFS field types: Time and Date codecs plus plain string aliases."""

from gtfs_reader.errors import InvalidFieldFormat

# Id of a GTFS entity, a sequence of any UTF-8 characters.
Id = str
# A string of UTF-8 characters.
Text = str
# An ISO 4217 alphabetical currency code.
CurrencyCode = str
# An IETF BCP 47 language code.
LanguageCode = str

# Minutes and seconds above this value are rejected. 60 itself is accepted.
MAX_MINUTES_SECONDS = 60


def _is_ascii_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _check_unsigned(*values: int) -> None:
    for value in values:
        if not isinstance(value, int) or value < 0:
            raise InvalidFieldFormat(f"Expected a non-negative integer, got {value!r}")


class Time:
    """Time within a service day in the HH:MM:SS format (H:MM:SS is also accepted).

    Hours may exceed 24 for trips running past midnight, e.g. "27:05:00" is
    3:05 AM on the next calendar day of the same service day.

    Construct either from the raw field text or from integers:
        Time("0:19:00")
        Time(14, 30, 0)

    An empty string yields a time that is not provided.

    Equality and hashing use the (hours, minutes, seconds) triple, which
    limit_hours_to_24max() changes in place. Call it on a copy, not on a Time
    held by a record or used as a set member or dict key:
        display = Time(stop_time.arrival_time.get_raw_time())
        display.limit_hours_to_24max()
    """

    __slots__ = ("_provided", "_raw", "_total_seconds", "_hh", "_mm", "_ss")

    def __init__(self, value: str | int = "", minutes: int | None = None, seconds: int | None = None):
        self._provided = False
        self._raw = ""
        self._total_seconds = 0
        self._hh = 0
        self._mm = 0
        self._ss = 0

        if isinstance(value, str):
            if minutes is not None or seconds is not None:
                raise TypeError("Time accepts either a string or (hours, minutes, seconds)")
            self._parse(value)
        else:
            self._from_components(value, minutes or 0, seconds or 0)

    def _parse(self, raw_time: str) -> None:
        self._raw = raw_time
        if not raw_time:
            return

        length = len(raw_time)
        if length not in (7, 8) or raw_time[length - 3] != ":" or raw_time[length - 6] != ":":
            raise InvalidFieldFormat(f"Time is not in [H]H:MM:SS format: {raw_time}")

        hh_str = raw_time[: length - 6]
        mm_str = raw_time[length - 5 : length - 3]
        ss_str = raw_time[length - 2 :]
        if not all(_is_ascii_digits(part) for part in (hh_str, mm_str, ss_str)):
            raise InvalidFieldFormat(f"Time is not in [H]H:MM:SS format: {raw_time}")

        self._hh, self._mm, self._ss = int(hh_str), int(mm_str), int(ss_str)
        self._check_minutes_seconds()
        self._set_total_seconds()
        self._provided = True

    def _from_components(self, hours: int, minutes: int, seconds: int) -> None:
        _check_unsigned(hours, minutes, seconds)
        self._hh, self._mm, self._ss = hours, minutes, seconds
        self._check_minutes_seconds()
        self._set_total_seconds()
        self._set_raw_time()
        self._provided = True

    def _check_minutes_seconds(self) -> None:
        if self._mm > MAX_MINUTES_SECONDS or self._ss > MAX_MINUTES_SECONDS:
            raise InvalidFieldFormat(
                f"Time minutes/seconds wrong value: {self._mm} minutes, {self._ss} seconds"
            )

    def _set_total_seconds(self) -> None:
        self._total_seconds = self._hh * 3600 + self._mm * 60 + self._ss

    def _set_raw_time(self) -> None:
        self._raw = f"{self._hh:02d}:{self._mm:02d}:{self._ss:02d}"

    def is_provided(self) -> bool:
        return self._provided

    def get_total_seconds(self) -> int:
        """Seconds since the start of the service day (can exceed 86400)."""
        return self._total_seconds

    def get_hh_mm_ss(self) -> tuple[int, int, int]:
        return (self._hh, self._mm, self._ss)

    def get_raw_time(self) -> str:
        return self._raw

    def limit_hours_to_24max(self) -> bool:
        """Wrap hours into [0, 24) for display.

        Mutates this Time, so its hash changes when hours are wrapped.

        Returns:
            True if the hours were wrapped, False if they were already below 24.
        """
        if self._hh < 24:
            return False

        self._hh %= 24
        self._set_total_seconds()
        self._set_raw_time()
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Time):
            return NotImplemented
        return self._provided == other._provided and self.get_hh_mm_ss() == other.get_hh_mm_ss()

    def __hash__(self) -> int:
        return hash((self._provided, self.get_hh_mm_ss()))

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        if not self._provided:
            return "Time()"
        return f"Time({self._raw!r})"


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


class Date:
    """Service day in the YYYYMMDD format.

    Construct either from the raw field text or from integers:
        Date("20200229")
        Date(2022, 8, 16)

    An empty string yields a date that is not provided.
    """

    __slots__ = ("_provided", "_raw", "_yyyy", "_mm", "_dd")

    def __init__(self, value: str | int = "", month: int | None = None, day: int | None = None):
        self._provided = False
        self._raw = ""
        self._yyyy = 0
        self._mm = 0
        self._dd = 0

        if isinstance(value, str):
            if month is not None or day is not None:
                raise TypeError("Date accepts either a string or (year, month, day)")
            self._parse(value)
        else:
            self._from_components(value, month or 0, day or 0)

    def _parse(self, raw_date: str) -> None:
        self._raw = raw_date
        if not raw_date:
            return

        if len(raw_date) != 8 or not _is_ascii_digits(raw_date):
            raise InvalidFieldFormat(f"Date is not in YYYYMMDD format: {raw_date}")

        self._yyyy = int(raw_date[:4])
        self._mm = int(raw_date[4:6])
        self._dd = int(raw_date[6:])
        self._check_valid()
        self._provided = True

    def _from_components(self, year: int, month: int, day: int) -> None:
        _check_unsigned(year, month, day)
        self._yyyy, self._mm, self._dd = year, month, day
        self._check_valid()
        self._raw = f"{self._yyyy:04d}{self._mm:02d}{self._dd:02d}"
        self._provided = True

    def _check_valid(self) -> None:
        yyyy, mm, dd = self._yyyy, self._mm, self._dd
        if not (1000 <= yyyy <= 9999):
            raise InvalidFieldFormat(f"Date check failed: year {yyyy} is out of range")
        if not (1 <= mm <= 12):
            raise InvalidFieldFormat(f"Date check failed: month {mm} is out of range")
        if not (1 <= dd <= 31):
            raise InvalidFieldFormat(f"Date check failed: day {dd} is out of range")

        if mm == 2 and dd > 28:
            if not is_leap_year(yyyy):
                raise InvalidFieldFormat(
                    f"Invalid days count in February of non-leap year: {dd} days, year {yyyy}"
                )
            if dd > 29:
                raise InvalidFieldFormat(
                    f"Invalid days count in February of leap year: {dd} days, year {yyyy}"
                )

        if dd > 30 and mm in (4, 6, 9, 11):
            raise InvalidFieldFormat(f"Invalid days count in month: {dd} days in month {mm}")

    def is_provided(self) -> bool:
        return self._provided

    def get_yyyy_mm_dd(self) -> tuple[int, int, int]:
        return (self._yyyy, self._mm, self._dd)

    def get_raw_date(self) -> str:
        return self._raw

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self._provided == other._provided and self.get_yyyy_mm_dd() == other.get_yyyy_mm_dd()

    def __lt__(self, other: "Date") -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self.get_yyyy_mm_dd() < other.get_yyyy_mm_dd()

    def __hash__(self) -> int:
        return hash((self._provided, self.get_yyyy_mm_dd()))

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        if not self._provided:
            return "Date()"
        return f"Date({self._raw!r})"
