"""Pydantic models for GTFS entities.

Text fields use "" for both absent and empty values. Time and Date fields hold
a not-provided codec value when the column is empty.
"""

from pydantic import BaseModel, ConfigDict, Field

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
from gtfs_reader.models.fields import CurrencyCode, Date, Id, LanguageCode, Text, Time


class GTFSEntity(BaseModel):
    """Base for records built from one row of a GTFS file."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class Agency(GTFSEntity):
    """GTFS agency entity."""

    agency_id: Id = ""  # required only for multi-agency feeds
    agency_name: Text
    agency_url: Text
    agency_timezone: Text
    agency_lang: LanguageCode = ""
    agency_phone: Text = ""
    agency_fare_url: Text = ""
    agency_email: Text = ""


class Stop(GTFSEntity):
    """GTFS stop entity.

    Coordinates are None unless both stop_lat and stop_lon are provided.
    """

    stop_id: Id
    stop_name: Text = ""
    coordinates_present: bool = False
    stop_lat: float | None = None
    stop_lon: float | None = None
    zone_id: Id = ""
    parent_station: Id = ""
    stop_code: Text = ""
    stop_desc: Text = ""
    stop_url: Text = ""
    location_type: StopLocationType = StopLocationType.GENERIC_NODE
    stop_timezone: Text = ""
    wheelchair_boarding: TripAccess = TripAccess.NO_INFO
    level_id: Id = ""
    platform_code: Text = ""


class Route(GTFSEntity):
    """GTFS route entity."""

    route_id: Id
    route_type: RouteType
    agency_id: Id = ""
    route_short_name: Text = ""
    route_long_name: Text = ""
    route_desc: Text = ""
    route_url: Text = ""
    route_color: Text = ""
    route_text_color: Text = ""
    route_sort_order: int = 0  # smaller values are displayed first


class Trip(GTFSEntity):
    """GTFS trip entity."""

    route_id: Id
    service_id: Id
    trip_id: Id
    trip_headsign: Text = ""
    trip_short_name: Text = ""
    direction_id: TripDirectionId = TripDirectionId.DEFAULT_DIRECTION
    block_id: Id = ""
    shape_id: Id = ""
    wheelchair_accessible: TripAccess = TripAccess.NO_INFO
    bikes_allowed: TripAccess = TripAccess.NO_INFO


class StopTime(GTFSEntity):
    """GTFS stop_times entity."""

    trip_id: Id
    stop_id: Id
    stop_sequence: int
    arrival_time: Time = Field(default_factory=Time)  # can exceed 24:00:00
    departure_time: Time = Field(default_factory=Time)
    stop_headsign: Text = ""
    pickup_type: StopTimeBoarding = StopTimeBoarding.REGULARLY_SCHEDULED
    drop_off_type: StopTimeBoarding = StopTimeBoarding.REGULARLY_SCHEDULED
    shape_dist_traveled: float = 0.0
    timepoint: StopTimePoint = StopTimePoint.EXACT


class CalendarItem(GTFSEntity):
    """GTFS calendar entity for service patterns."""

    service_id: Id
    monday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    tuesday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    wednesday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    thursday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    friday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    saturday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    sunday: CalendarAvailability = CalendarAvailability.NOT_AVAILABLE
    start_date: Date = Field(default_factory=Date)
    end_date: Date = Field(default_factory=Date)


class CalendarDate(GTFSEntity):
    """GTFS calendar_dates entity for service exceptions."""

    service_id: Id
    date: Date
    exception_type: CalendarDateException = CalendarDateException.ADDED


class FareAttribute(GTFSEntity):
    """GTFS fare_attributes entity."""

    fare_id: Id
    price: float
    currency_code: CurrencyCode
    payment_method: FarePayment = FarePayment.BEFORE_BOARDING
    transfers: FareTransfers = FareTransfers.UNLIMITED
    agency_id: Id = ""
    transfer_duration: int = 0  # seconds before a transfer expires


class FareRule(GTFSEntity):
    """GTFS fare_rules entity."""

    fare_id: Id
    route_id: Id = ""
    origin_id: Id = ""
    destination_id: Id = ""
    contains_id: Id = ""


class ShapePoint(GTFSEntity):
    """One point of a GTFS shape."""

    shape_id: Id
    shape_pt_lat: float
    shape_pt_lon: float
    shape_pt_sequence: int
    shape_dist_traveled: float = 0.0


class Frequency(GTFSEntity):
    """GTFS frequencies entity."""

    trip_id: Id
    start_time: Time
    end_time: Time
    headway_secs: int
    exact_times: FrequencyTripService = FrequencyTripService.FREQUENCY_BASED


class Transfer(GTFSEntity):
    """GTFS transfers entity."""

    from_stop_id: Id
    to_stop_id: Id
    transfer_type: TransferType = TransferType.RECOMMENDED
    min_transfer_time: int = 0


class Pathway(GTFSEntity):
    """GTFS-Pathways entity linking locations within a station."""

    pathway_id: Id
    from_stop_id: Id
    to_stop_id: Id
    pathway_mode: PathwayMode
    is_bidirectional: PathwayDirection
    length: float = 0.0  # meters
    traversal_time: int = 0  # seconds
    stair_count: int = 0  # negative when going down
    max_slope: float = 0.0
    min_width: float = 0.0  # meters
    signposted_as: Text = ""
    reversed_signposted_as: Text = ""


class Level(GTFSEntity):
    """GTFS levels entity. Ground level has index 0, below-ground levels are negative."""

    level_id: Id
    level_index: float
    level_name: Text = ""


class FeedInfo(GTFSEntity):
    """GTFS feed_info entity."""

    feed_publisher_name: Text = ""
    feed_publisher_url: Text = ""
    feed_lang: LanguageCode = ""
    default_lang: LanguageCode = ""
    feed_start_date: Date = Field(default_factory=Date)
    feed_end_date: Date = Field(default_factory=Date)
    feed_version: Text = ""
    feed_contact_email: Text = ""
    feed_contact_url: Text = ""


class Translation(GTFSEntity):
    """GTFS translations entity."""

    table_name: TranslationTable
    field_name: Text
    language: LanguageCode
    translation: Text
    record_id: Id = ""
    record_sub_id: Id = ""
    field_value: Text = ""


class Attribution(GTFSEntity):
    """GTFS attributions entity."""

    organization_name: Text
    attribution_id: Id = ""
    agency_id: Id = ""
    route_id: Id = ""
    trip_id: Id = ""
    is_producer: AttributionRole = AttributionRole.NO
    is_operator: AttributionRole = AttributionRole.NO
    is_authority: AttributionRole = AttributionRole.NO
    attribution_url: Text = ""
    attribution_email: Text = ""
    attribution_phone: Text = ""
