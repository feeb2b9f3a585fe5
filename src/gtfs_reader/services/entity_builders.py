"""Entity builders: turn one parsed CSV row into a typed GTFS record.

Every builder takes the column name -> value mapping of a single row and
either returns a record or raises:

- RequiredFieldAbsent when a required column is missing from the row, or when
  a conditionally required combination of fields is empty.
- InvalidFieldFormat when a present value cannot be parsed.
"""

import math
import re
from collections.abc import Callable
from enum import Enum, IntEnum
from typing import TypeVar

from gtfs_reader.data.csv_parser import ParsedCsvRow
from gtfs_reader.errors import CoordinateOutOfRange, InvalidFieldFormat, RequiredFieldAbsent
from gtfs_reader.models.enums import (
    AttributionRole,
    CalendarAvailability,
    CalendarDateException,
    FarePayment,
    FareTransfers,
    FrequencyTripService,
    PathwayDirection,
    PathwayMode,
    RouteType,
    StopLocationType,
    StopTimeBoarding,
    StopTimePoint,
    TransferType,
    TranslationTable,
    TripAccess,
    TripDirectionId,
)
from gtfs_reader.models.fields import Date, Time
from gtfs_reader.models.gtfs import (
    Agency,
    Attribution,
    CalendarDate,
    CalendarItem,
    FareAttribute,
    FareRule,
    FeedInfo,
    Frequency,
    GTFSEntity,
    Level,
    Pathway,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Transfer,
    Translation,
    Trip,
)

E = TypeVar("E", bound=IntEnum)

# ASCII-only numeric forms; int() and float() also take "1_000" and non-ASCII digits
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
REAL_PATTERN = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")

WEEKDAY_COLUMNS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


# Field helpers -------------------------------------------------------------------------------


def get_required(row: ParsedCsvRow, key: str) -> str:
    """Value of a required column; the value itself may be empty."""
    try:
        return row[key]
    except KeyError:
        raise RequiredFieldAbsent(f"Required field '{key}' is absent") from None


def get_optional(row: ParsedCsvRow, key: str, default: str = "") -> str:
    """Value of an optional column, or the default if the column is missing."""
    return row.get(key, default)


def _raw_value(row: ParsedCsvRow, key: str, required: bool) -> str:
    return get_required(row, key) if required else get_optional(row, key)


def parse_int(row: ParsedCsvRow, key: str, *, required: bool = False, default: int = 0) -> int:
    """Parse an integer field.

    An empty optional field yields the default. An empty required field, or
    any value that is not an integer, raises InvalidFieldFormat.
    """
    value = _raw_value(row, key, required)
    if not value and not required:
        return default
    if not INTEGER_PATTERN.fullmatch(value):
        raise InvalidFieldFormat(f"Field '{key}' is not an integer: {value!r}")
    return int(value)


def parse_float(
    row: ParsedCsvRow, key: str, *, required: bool = False, default: float | None = 0.0
) -> float | None:
    """Parse a real number field. Same empty-value rules as parse_int()."""
    value = _raw_value(row, key, required)
    if not value and not required:
        return default
    if not REAL_PATTERN.fullmatch(value):
        raise InvalidFieldFormat(f"Field '{key}' is not a number: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidFieldFormat(f"Field '{key}' is not a finite number: {value!r}")
    return number


def parse_enum(
    row: ParsedCsvRow, key: str, enum_type: type[E], *, required: bool = False, default: E | None = None
) -> E:
    """Parse an enumerated integer field into its IntEnum member."""
    value = _raw_value(row, key, required)
    if not value and not required and default is not None:
        return default
    code = parse_int(row, key, required=True)
    try:
        return enum_type(code)
    except ValueError:
        raise InvalidFieldFormat(f"Field '{key}' has unknown {enum_type.__name__} value: {code}") from None


def parse_time(row: ParsedCsvRow, key: str, *, required: bool = True) -> Time:
    try:
        return Time(_raw_value(row, key, required))
    except InvalidFieldFormat as e:
        raise InvalidFieldFormat(f"Field '{key}': {e.message}") from e


def parse_date(row: ParsedCsvRow, key: str, *, required: bool = True) -> Date:
    try:
        return Date(_raw_value(row, key, required))
    except InvalidFieldFormat as e:
        raise InvalidFieldFormat(f"Field '{key}': {e.message}") from e


def check_latitude(latitude: float) -> None:
    if latitude < -90.0 or latitude > 90.0:
        raise CoordinateOutOfRange(f"Latitude out of range [-90, 90]: {latitude}")


def check_longitude(longitude: float) -> None:
    if longitude < -180.0 or longitude > 180.0:
        raise CoordinateOutOfRange(f"Longitude out of range [-180, 180]: {longitude}")


def check_coordinates(latitude: float, longitude: float) -> None:
    """Raise if the pair is not valid WGS84 decimal degrees."""
    check_latitude(latitude)
    check_longitude(longitude)


def check_non_negative(key: str, value: float) -> None:
    if value < 0:
        raise InvalidFieldFormat(f"Field '{key}' must not be negative: {value}")


# Builders ------------------------------------------------------------------------------------


def build_agency(row: ParsedCsvRow) -> Agency:
    return Agency(
        agency_id=get_optional(row, "agency_id"),
        agency_name=get_required(row, "agency_name"),
        agency_url=get_required(row, "agency_url"),
        agency_timezone=get_required(row, "agency_timezone"),
        agency_lang=get_optional(row, "agency_lang"),
        agency_phone=get_optional(row, "agency_phone"),
        agency_fare_url=get_optional(row, "agency_fare_url"),
        agency_email=get_optional(row, "agency_email"),
    )


def build_stop(row: ParsedCsvRow) -> Stop:
    """Build a stop.

    Coordinates are optional, but only kept when both are present: a row with
    a single coordinate gets coordinates_present=False and no coordinates.
    """
    stop_id = get_required(row, "stop_id")

    stop_lat = parse_float(row, "stop_lat", default=None)
    if stop_lat is not None:
        check_latitude(stop_lat)
    stop_lon = parse_float(row, "stop_lon", default=None)
    if stop_lon is not None:
        check_longitude(stop_lon)

    coordinates_present = stop_lat is not None and stop_lon is not None
    if not coordinates_present:
        stop_lat = stop_lon = None

    return Stop(
        stop_id=stop_id,
        stop_name=get_optional(row, "stop_name"),
        coordinates_present=coordinates_present,
        stop_lat=stop_lat,
        stop_lon=stop_lon,
        zone_id=get_optional(row, "zone_id"),
        parent_station=get_optional(row, "parent_station"),
        stop_code=get_optional(row, "stop_code"),
        stop_desc=get_optional(row, "stop_desc"),
        stop_url=get_optional(row, "stop_url"),
        location_type=parse_enum(
            row, "location_type", StopLocationType, default=StopLocationType.GENERIC_NODE
        ),
        stop_timezone=get_optional(row, "stop_timezone"),
        wheelchair_boarding=parse_enum(
            row, "wheelchair_boarding", TripAccess, default=TripAccess.NO_INFO
        ),
        level_id=get_optional(row, "level_id"),
        platform_code=get_optional(row, "platform_code"),
    )


def build_route(row: ParsedCsvRow) -> Route:
    route_id = get_required(row, "route_id")
    route_type = parse_enum(row, "route_type", RouteType, required=True)

    route_short_name = get_optional(row, "route_short_name")
    route_long_name = get_optional(row, "route_long_name")
    if not route_short_name and not route_long_name:
        raise RequiredFieldAbsent("'route_short_name' or 'route_long_name' must be specified")

    return Route(
        route_id=route_id,
        route_type=route_type,
        agency_id=get_optional(row, "agency_id"),
        route_short_name=route_short_name,
        route_long_name=route_long_name,
        route_desc=get_optional(row, "route_desc"),
        route_url=get_optional(row, "route_url"),
        route_color=get_optional(row, "route_color"),
        route_text_color=get_optional(row, "route_text_color"),
        route_sort_order=parse_int(row, "route_sort_order"),
    )


def build_trip(row: ParsedCsvRow) -> Trip:
    return Trip(
        route_id=get_required(row, "route_id"),
        service_id=get_required(row, "service_id"),
        trip_id=get_required(row, "trip_id"),
        trip_headsign=get_optional(row, "trip_headsign"),
        trip_short_name=get_optional(row, "trip_short_name"),
        direction_id=parse_enum(
            row, "direction_id", TripDirectionId, default=TripDirectionId.DEFAULT_DIRECTION
        ),
        block_id=get_optional(row, "block_id"),
        shape_id=get_optional(row, "shape_id"),
        wheelchair_accessible=parse_enum(
            row, "wheelchair_accessible", TripAccess, default=TripAccess.NO_INFO
        ),
        bikes_allowed=parse_enum(row, "bikes_allowed", TripAccess, default=TripAccess.NO_INFO),
    )


def build_stop_time(row: ParsedCsvRow) -> StopTime:
    """Build a stop time.

    The arrival_time/departure_time columns must exist but may be empty for
    interpolated stops, unless the row is explicitly marked as a timepoint.
    """
    trip_id = get_required(row, "trip_id")
    stop_id = get_required(row, "stop_id")
    stop_sequence = parse_int(row, "stop_sequence", required=True)
    check_non_negative("stop_sequence", stop_sequence)

    arrival_time = parse_time(row, "arrival_time")
    departure_time = parse_time(row, "departure_time")

    timepoint = parse_enum(row, "timepoint", StopTimePoint, default=StopTimePoint.EXACT)
    timepoint_given = bool(get_optional(row, "timepoint"))
    if timepoint_given and timepoint is StopTimePoint.EXACT:
        if not arrival_time.is_provided() or not departure_time.is_provided():
            raise RequiredFieldAbsent(
                "'arrival_time' and 'departure_time' must be specified when 'timepoint' is 1"
            )

    shape_dist_traveled = parse_float(row, "shape_dist_traveled")
    check_non_negative("shape_dist_traveled", shape_dist_traveled)

    return StopTime(
        trip_id=trip_id,
        stop_id=stop_id,
        stop_sequence=stop_sequence,
        arrival_time=arrival_time,
        departure_time=departure_time,
        stop_headsign=get_optional(row, "stop_headsign"),
        pickup_type=parse_enum(
            row, "pickup_type", StopTimeBoarding, default=StopTimeBoarding.REGULARLY_SCHEDULED
        ),
        drop_off_type=parse_enum(
            row, "drop_off_type", StopTimeBoarding, default=StopTimeBoarding.REGULARLY_SCHEDULED
        ),
        shape_dist_traveled=shape_dist_traveled,
        timepoint=timepoint,
    )


def build_calendar_item(row: ParsedCsvRow) -> CalendarItem:
    service_id = get_required(row, "service_id")
    weekdays = {
        day: parse_enum(row, day, CalendarAvailability, required=True) for day in WEEKDAY_COLUMNS
    }
    return CalendarItem(
        service_id=service_id,
        **weekdays,
        start_date=parse_date(row, "start_date"),
        end_date=parse_date(row, "end_date"),
    )


def build_calendar_date(row: ParsedCsvRow) -> CalendarDate:
    return CalendarDate(
        service_id=get_required(row, "service_id"),
        date=parse_date(row, "date"),
        exception_type=parse_enum(row, "exception_type", CalendarDateException, required=True),
    )


def build_fare_attribute(row: ParsedCsvRow) -> FareAttribute:
    fare_id = get_required(row, "fare_id")
    price = parse_float(row, "price", required=True)
    check_non_negative("price", price)

    # An empty 'transfers' value means unlimited transfers.
    get_required(row, "transfers")
    transfers = parse_enum(row, "transfers", FareTransfers, default=FareTransfers.UNLIMITED)

    transfer_duration = parse_int(row, "transfer_duration")
    check_non_negative("transfer_duration", transfer_duration)

    return FareAttribute(
        fare_id=fare_id,
        price=price,
        currency_code=get_required(row, "currency_code"),
        payment_method=parse_enum(row, "payment_method", FarePayment, required=True),
        transfers=transfers,
        agency_id=get_optional(row, "agency_id"),
        transfer_duration=transfer_duration,
    )


def build_fare_rule(row: ParsedCsvRow) -> FareRule:
    return FareRule(
        fare_id=get_required(row, "fare_id"),
        route_id=get_optional(row, "route_id"),
        origin_id=get_optional(row, "origin_id"),
        destination_id=get_optional(row, "destination_id"),
        contains_id=get_optional(row, "contains_id"),
    )


def build_shape_point(row: ParsedCsvRow) -> ShapePoint:
    shape_id = get_required(row, "shape_id")
    shape_pt_sequence = parse_int(row, "shape_pt_sequence", required=True)

    shape_pt_lat = parse_float(row, "shape_pt_lat", required=True)
    shape_pt_lon = parse_float(row, "shape_pt_lon", required=True)
    check_coordinates(shape_pt_lat, shape_pt_lon)

    shape_dist_traveled = parse_float(row, "shape_dist_traveled")
    check_non_negative("shape_dist_traveled", shape_dist_traveled)

    return ShapePoint(
        shape_id=shape_id,
        shape_pt_lat=shape_pt_lat,
        shape_pt_lon=shape_pt_lon,
        shape_pt_sequence=shape_pt_sequence,
        shape_dist_traveled=shape_dist_traveled,
    )


def build_frequency(row: ParsedCsvRow) -> Frequency:
    headway_secs = parse_int(row, "headway_secs", required=True)
    check_non_negative("headway_secs", headway_secs)

    return Frequency(
        trip_id=get_required(row, "trip_id"),
        start_time=parse_time(row, "start_time"),
        end_time=parse_time(row, "end_time"),
        headway_secs=headway_secs,
        exact_times=parse_enum(
            row, "exact_times", FrequencyTripService, default=FrequencyTripService.FREQUENCY_BASED
        ),
    )


def build_transfer(row: ParsedCsvRow) -> Transfer:
    from_stop_id = get_required(row, "from_stop_id")
    to_stop_id = get_required(row, "to_stop_id")

    # An empty 'transfer_type' value means a recommended transfer.
    get_required(row, "transfer_type")
    transfer_type = parse_enum(row, "transfer_type", TransferType, default=TransferType.RECOMMENDED)

    min_transfer_time = parse_int(row, "min_transfer_time")
    check_non_negative("min_transfer_time", min_transfer_time)

    return Transfer(
        from_stop_id=from_stop_id,
        to_stop_id=to_stop_id,
        transfer_type=transfer_type,
        min_transfer_time=min_transfer_time,
    )


def build_pathway(row: ParsedCsvRow) -> Pathway:
    length = parse_float(row, "length")
    check_non_negative("length", length)

    traversal_time = parse_int(row, "traversal_time")
    if get_optional(row, "traversal_time") and traversal_time <= 0:
        raise InvalidFieldFormat(f"Field 'traversal_time' must be positive: {traversal_time}")

    min_width = parse_float(row, "min_width")
    check_non_negative("min_width", min_width)

    return Pathway(
        pathway_id=get_required(row, "pathway_id"),
        from_stop_id=get_required(row, "from_stop_id"),
        to_stop_id=get_required(row, "to_stop_id"),
        pathway_mode=parse_enum(row, "pathway_mode", PathwayMode, required=True),
        is_bidirectional=parse_enum(row, "is_bidirectional", PathwayDirection, required=True),
        length=length,
        traversal_time=traversal_time,
        stair_count=parse_int(row, "stair_count"),
        max_slope=parse_float(row, "max_slope"),
        min_width=min_width,
        signposted_as=get_optional(row, "signposted_as"),
        reversed_signposted_as=get_optional(row, "reversed_signposted_as"),
    )


def build_level(row: ParsedCsvRow) -> Level:
    return Level(
        level_id=get_required(row, "level_id"),
        level_index=parse_float(row, "level_index", required=True),
        level_name=get_optional(row, "level_name"),
    )


def build_feed_info(row: ParsedCsvRow) -> FeedInfo:
    return FeedInfo(
        feed_publisher_name=get_required(row, "feed_publisher_name"),
        feed_publisher_url=get_required(row, "feed_publisher_url"),
        feed_lang=get_required(row, "feed_lang"),
        default_lang=get_optional(row, "default_lang"),
        feed_start_date=parse_date(row, "feed_start_date", required=False),
        feed_end_date=parse_date(row, "feed_end_date", required=False),
        feed_version=get_optional(row, "feed_version"),
        feed_contact_email=get_optional(row, "feed_contact_email"),
        feed_contact_url=get_optional(row, "feed_contact_url"),
    )


def build_translation(row: ParsedCsvRow) -> Translation:
    """Build a translation.

    Rows of tables other than feed_info are identified either by record_id
    (plus record_sub_id for stop_times) or by field_value.
    """
    raw_table_name = get_required(row, "table_name")
    try:
        table_name = TranslationTable(raw_table_name)
    except ValueError:
        raise InvalidFieldFormat(f"Field 'table_name' has unknown value: {raw_table_name!r}") from None

    record_id = get_optional(row, "record_id")
    record_sub_id = get_optional(row, "record_sub_id")
    field_value = get_optional(row, "field_value")

    if table_name is not TranslationTable.FEED_INFO:
        if not record_id and not field_value:
            raise RequiredFieldAbsent(
                f"'record_id' or 'field_value' must be specified for table '{table_name.value}'"
            )
        if table_name is TranslationTable.STOP_TIMES and record_id and not record_sub_id:
            raise RequiredFieldAbsent(
                "'record_sub_id' must be specified for 'stop_times' translations with 'record_id'"
            )

    return Translation(
        table_name=table_name,
        field_name=get_required(row, "field_name"),
        language=get_required(row, "language"),
        translation=get_required(row, "translation"),
        record_id=record_id,
        record_sub_id=record_sub_id,
        field_value=field_value,
    )


def build_attribution(row: ParsedCsvRow) -> Attribution:
    organization_name = get_required(row, "organization_name")
    roles = {
        role: parse_enum(row, role, AttributionRole, default=AttributionRole.NO)
        for role in ("is_producer", "is_operator", "is_authority")
    }
    if AttributionRole.YES not in roles.values():
        raise RequiredFieldAbsent(
            "At least one of 'is_producer', 'is_operator' or 'is_authority' must be 1"
        )

    return Attribution(
        organization_name=organization_name,
        attribution_id=get_optional(row, "attribution_id"),
        agency_id=get_optional(row, "agency_id"),
        route_id=get_optional(row, "route_id"),
        trip_id=get_optional(row, "trip_id"),
        **roles,
        attribution_url=get_optional(row, "attribution_url"),
        attribution_email=get_optional(row, "attribution_email"),
        attribution_phone=get_optional(row, "attribution_phone"),
    )


# Dispatch ------------------------------------------------------------------------------------


class FileKind(str, Enum):
    """GTFS dataset files, named by their file stem."""

    AGENCY = "agency"
    STOPS = "stops"
    ROUTES = "routes"
    TRIPS = "trips"
    STOP_TIMES = "stop_times"
    CALENDAR = "calendar"
    CALENDAR_DATES = "calendar_dates"
    FARE_ATTRIBUTES = "fare_attributes"
    FARE_RULES = "fare_rules"
    SHAPES = "shapes"
    FREQUENCIES = "frequencies"
    TRANSFERS = "transfers"
    PATHWAYS = "pathways"
    LEVELS = "levels"
    FEED_INFO = "feed_info"
    TRANSLATIONS = "translations"
    ATTRIBUTIONS = "attributions"

    @property
    def filename(self) -> str:
        return FILE_DEFINITIONS[self][0]


EntityBuilder = Callable[[ParsedCsvRow], GTFSEntity]

# File kind -> (csv_filename, builder)
FILE_DEFINITIONS: dict[FileKind, tuple[str, EntityBuilder]] = {
    FileKind.AGENCY: ("agency.txt", build_agency),
    FileKind.STOPS: ("stops.txt", build_stop),
    FileKind.ROUTES: ("routes.txt", build_route),
    FileKind.TRIPS: ("trips.txt", build_trip),
    FileKind.STOP_TIMES: ("stop_times.txt", build_stop_time),
    FileKind.CALENDAR: ("calendar.txt", build_calendar_item),
    FileKind.CALENDAR_DATES: ("calendar_dates.txt", build_calendar_date),
    FileKind.FARE_ATTRIBUTES: ("fare_attributes.txt", build_fare_attribute),
    FileKind.FARE_RULES: ("fare_rules.txt", build_fare_rule),
    FileKind.SHAPES: ("shapes.txt", build_shape_point),
    FileKind.FREQUENCIES: ("frequencies.txt", build_frequency),
    FileKind.TRANSFERS: ("transfers.txt", build_transfer),
    FileKind.PATHWAYS: ("pathways.txt", build_pathway),
    FileKind.LEVELS: ("levels.txt", build_level),
    FileKind.FEED_INFO: ("feed_info.txt", build_feed_info),
    FileKind.TRANSLATIONS: ("translations.txt", build_translation),
    FileKind.ATTRIBUTIONS: ("attributions.txt", build_attribution),
}


def build_entity(kind: FileKind, row: ParsedCsvRow) -> GTFSEntity:
    """Build the record for one row of the given file kind."""
    _, builder = FILE_DEFINITIONS[kind]
    return builder(row)
