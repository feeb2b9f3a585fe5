"""GTFS feed container: reads a dataset and serves lookups over its records."""

import logging
from pathlib import Path

from gtfs_reader.data.config import ParserConfig, get_parser_config
from gtfs_reader.data.csv_parser import CsvParser
from gtfs_reader.data.source import FeedSource, open_source
from gtfs_reader.errors import GTFSError, InvalidGTFSPath, RequiredFieldAbsent, Result, ResultCode
from gtfs_reader.models.enums import TranslationTable
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
from gtfs_reader.services.entity_builders import FILE_DEFINITIONS, FileKind

logger = logging.getLogger(__name__)


class Feed:
    """In-memory GTFS dataset read from a directory or ZIP archive.

    Reading is explicit: construct the feed, then call read_feed() or one of
    the read_<file>() methods. Each of them returns a Result instead of
    raising. A collection is only replaced once its whole file parsed, so a
    failed read leaves the previous records in place.

    Usage:
        feed = Feed("data/gtfs.zip")
        result = feed.read_feed()
        if result.ok:
            stop_times = feed.get_stop_times_for_trip("T1")
    """

    def __init__(self, gtfs_path: Path | str, config: ParserConfig | None = None):
        """Initialize the feed.

        Args:
            gtfs_path: Path to a GTFS directory or ZIP file.
            config: Parser settings. Defaults to the environment configuration.
        """
        self.gtfs_path = Path(gtfs_path)
        self._config = config or get_parser_config()
        # Source shared by the reads of read_feed(); None outside of it
        self._source: FeedSource | None = None

        self._agencies: list[Agency] = []
        self._stops: list[Stop] = []
        self._routes: list[Route] = []
        self._trips: list[Trip] = []
        self._stop_times: list[StopTime] = []
        self._calendar: list[CalendarItem] = []
        self._calendar_dates: list[CalendarDate] = []
        self._fare_attributes: list[FareAttribute] = []
        self._fare_rules: list[FareRule] = []
        self._shapes: list[ShapePoint] = []
        self._frequencies: list[Frequency] = []
        self._transfers: list[Transfer] = []
        self._pathways: list[Pathway] = []
        self._levels: list[Level] = []
        self._feed_info = FeedInfo()
        self._translations: list[Translation] = []
        self._attributions: list[Attribution] = []

    # Reading -----------------------------------------------------------------------------

    def read_feed(self) -> Result:
        """Read every file of the dataset.

        Required files abort on any error. At least one of calendar.txt and
        calendar_dates.txt must be present. Missing optional files are logged
        and ignored; any other error in them is returned.
        """
        try:
            source = open_source(self.gtfs_path)
        except InvalidGTFSPath as e:
            return e.to_result()

        logger.info(f"Reading GTFS feed from {self.gtfs_path}")
        with source:
            self._source = source
            try:
                return self._read_all()
            finally:
                self._source = None

    def _read_all(self) -> Result:
        for read in (
            self.read_agencies,
            self.read_stops,
            self.read_routes,
            self.read_trips,
            self.read_stop_times,
        ):
            result = read()
            if not result.ok:
                return result

        calendar_result = self.read_calendar()
        calendar_dates_result = self.read_calendar_dates()
        if (
            calendar_result.code is ResultCode.ERROR_FILE_ABSENT
            and calendar_dates_result.code is ResultCode.ERROR_FILE_ABSENT
        ):
            return Result(
                code=ResultCode.ERROR_FILE_ABSENT,
                message="Neither calendar.txt nor calendar_dates.txt found",
            )
        for result in (calendar_result, calendar_dates_result):
            if not result.ok and result.code is not ResultCode.ERROR_FILE_ABSENT:
                return result

        optional_reads = {
            FileKind.FARE_ATTRIBUTES: self.read_fare_attributes,
            FileKind.FARE_RULES: self.read_fare_rules,
            FileKind.SHAPES: self.read_shapes,
            FileKind.FREQUENCIES: self.read_frequencies,
            FileKind.TRANSFERS: self.read_transfers,
            FileKind.PATHWAYS: self.read_pathways,
            FileKind.LEVELS: self.read_levels,
            FileKind.FEED_INFO: self.read_feed_info,
            FileKind.TRANSLATIONS: self.read_translations,
            FileKind.ATTRIBUTIONS: self.read_attributions,
        }
        for kind, read in optional_reads.items():
            result = read()
            if result.code is ResultCode.ERROR_FILE_ABSENT:
                logger.warning(f"Optional file {kind.filename} not found")
            elif not result.ok:
                return result

        return Result(message=f"Parsed {self.gtfs_path}")

    def _read_file(self, kind: FileKind) -> tuple[Result, list[GTFSEntity]]:
        """Parse one file into records, opening the source if needed."""
        if self._source is not None:
            return self._parse_file(self._source, kind)

        try:
            source = open_source(self.gtfs_path)
        except InvalidGTFSPath as e:
            return e.to_result(), []
        with source:
            return self._parse_file(source, kind)

    def _parse_file(self, source: FeedSource, kind: FileKind) -> tuple[Result, list[GTFSEntity]]:
        filename, builder = FILE_DEFINITIONS[kind]
        skip_invalid = self._config.skip_invalid_rows
        records: list[GTFSEntity] = []
        skipped_rows = 0

        with CsvParser(source, self._config) as parser:
            result = parser.read_header(filename)
            if not result.ok:
                return result, []

            logger.info(f"Loading {kind.value} from {filename}...")
            while True:
                result, row = parser.read_row()
                if result.code is ResultCode.END_OF_FILE:
                    break

                if result.ok and row:
                    try:
                        records.append(builder(row))
                        continue
                    except GTFSError as e:
                        result = e.to_result(parser.location)

                if result.ok:
                    # blank line, or a row dropped by the row length policy
                    continue
                if not skip_invalid:
                    return result, []
                logger.warning(f"Skipping invalid row: {result.message}")
                skipped_rows += 1

        logger.info(
            f"  Loaded {len(records):,} rows from {filename}"
            + (f" (skipped {skipped_rows:,} invalid)" if skipped_rows else "")
        )
        return Result(message=f"Parsed {filename}"), records

    def read_agencies(self) -> Result:
        """Read agency.txt.

        Every agency must carry an agency_id when the file lists more than one.
        """
        result, records = self._read_file(FileKind.AGENCY)
        if not result.ok:
            return result
        if len(records) > 1 and any(not agency.agency_id for agency in records):
            return RequiredFieldAbsent(
                "'agency_id' must be specified when the feed contains several agencies"
            ).to_result(FileKind.AGENCY.filename)
        self._agencies = records
        return result

    def read_stops(self) -> Result:
        result, records = self._read_file(FileKind.STOPS)
        if result.ok:
            self._stops = records
        return result

    def read_routes(self) -> Result:
        result, records = self._read_file(FileKind.ROUTES)
        if result.ok:
            self._routes = records
        return result

    def read_trips(self) -> Result:
        result, records = self._read_file(FileKind.TRIPS)
        if result.ok:
            self._trips = records
        return result

    def read_stop_times(self) -> Result:
        result, records = self._read_file(FileKind.STOP_TIMES)
        if result.ok:
            self._stop_times = records
        return result

    def read_calendar(self) -> Result:
        result, records = self._read_file(FileKind.CALENDAR)
        if result.ok:
            self._calendar = records
        return result

    def read_calendar_dates(self) -> Result:
        result, records = self._read_file(FileKind.CALENDAR_DATES)
        if result.ok:
            self._calendar_dates = records
        return result

    def read_fare_attributes(self) -> Result:
        result, records = self._read_file(FileKind.FARE_ATTRIBUTES)
        if result.ok:
            self._fare_attributes = records
        return result

    def read_fare_rules(self) -> Result:
        result, records = self._read_file(FileKind.FARE_RULES)
        if result.ok:
            self._fare_rules = records
        return result

    def read_shapes(self) -> Result:
        result, records = self._read_file(FileKind.SHAPES)
        if result.ok:
            self._shapes = records
        return result

    def read_frequencies(self) -> Result:
        result, records = self._read_file(FileKind.FREQUENCIES)
        if result.ok:
            self._frequencies = records
        return result

    def read_transfers(self) -> Result:
        result, records = self._read_file(FileKind.TRANSFERS)
        if result.ok:
            self._transfers = records
        return result

    def read_pathways(self) -> Result:
        result, records = self._read_file(FileKind.PATHWAYS)
        if result.ok:
            self._pathways = records
        return result

    def read_levels(self) -> Result:
        result, records = self._read_file(FileKind.LEVELS)
        if result.ok:
            self._levels = records
        return result

    def read_feed_info(self) -> Result:
        """Read feed_info.txt. Only its first data row is used."""
        result, records = self._read_file(FileKind.FEED_INFO)
        if result.ok and records:
            self._feed_info = records[0]
        return result

    def read_translations(self) -> Result:
        result, records = self._read_file(FileKind.TRANSLATIONS)
        if result.ok:
            self._translations = records
        return result

    def read_attributions(self) -> Result:
        result, records = self._read_file(FileKind.ATTRIBUTIONS)
        if result.ok:
            self._attributions = records
        return result

    # Agencies ----------------------------------------------------------------------------

    def get_agencies(self) -> list[Agency]:
        return self._agencies

    def get_agency(self, agency_id: str = "") -> Agency | None:
        """Find an agency by id.

        agency_id is optional in single-agency feeds, so an empty id resolves
        to the only agency when there is exactly one.
        """
        if not agency_id and len(self._agencies) == 1:
            return self._agencies[0]
        return next((a for a in self._agencies if a.agency_id == agency_id), None)

    def add_agency(self, agency: Agency) -> None:
        self._agencies.append(agency)

    # Stops -------------------------------------------------------------------------------

    def get_stops(self) -> list[Stop]:
        return self._stops

    def get_stop(self, stop_id: str) -> Stop | None:
        return next((s for s in self._stops if s.stop_id == stop_id), None)

    def add_stop(self, stop: Stop) -> None:
        self._stops.append(stop)

    # Routes ------------------------------------------------------------------------------

    def get_routes(self) -> list[Route]:
        return self._routes

    def get_route(self, route_id: str) -> Route | None:
        return next((r for r in self._routes if r.route_id == route_id), None)

    def add_route(self, route: Route) -> None:
        self._routes.append(route)

    # Trips -------------------------------------------------------------------------------

    def get_trips(self) -> list[Trip]:
        return self._trips

    def get_trip(self, trip_id: str) -> Trip | None:
        return next((t for t in self._trips if t.trip_id == trip_id), None)

    def add_trip(self, trip: Trip) -> None:
        self._trips.append(trip)

    # Stop times --------------------------------------------------------------------------

    def get_stop_times(self) -> list[StopTime]:
        return self._stop_times

    def get_stop_times_for_stop(self, stop_id: str) -> list[StopTime]:
        return [st for st in self._stop_times if st.stop_id == stop_id]

    def get_stop_times_for_trip(self, trip_id: str, sort_by_sequence: bool = True) -> list[StopTime]:
        """Stop times of a trip, ordered by stop_sequence unless told otherwise."""
        stop_times = [st for st in self._stop_times if st.trip_id == trip_id]
        if sort_by_sequence:
            stop_times.sort(key=lambda st: st.stop_sequence)
        return stop_times

    def add_stop_time(self, stop_time: StopTime) -> None:
        self._stop_times.append(stop_time)

    # Calendar ----------------------------------------------------------------------------

    def get_calendar(self) -> list[CalendarItem]:
        return self._calendar

    def get_calendar_item(self, service_id: str) -> CalendarItem | None:
        return next((c for c in self._calendar if c.service_id == service_id), None)

    def add_calendar_item(self, calendar_item: CalendarItem) -> None:
        self._calendar.append(calendar_item)

    def get_calendar_dates(self) -> list[CalendarDate]:
        return self._calendar_dates

    def get_calendar_dates_for_service(
        self, service_id: str, sort_by_date: bool = True
    ) -> list[CalendarDate]:
        """Service exceptions of a service, ordered by date unless told otherwise."""
        calendar_dates = [cd for cd in self._calendar_dates if cd.service_id == service_id]
        if sort_by_date:
            calendar_dates.sort(key=lambda cd: cd.date)
        return calendar_dates

    def add_calendar_date(self, calendar_date: CalendarDate) -> None:
        self._calendar_dates.append(calendar_date)

    # Fares -------------------------------------------------------------------------------

    def get_fare_attributes(self) -> list[FareAttribute]:
        return self._fare_attributes

    def get_fare_attribute(self, fare_id: str) -> FareAttribute | None:
        return next((f for f in self._fare_attributes if f.fare_id == fare_id), None)

    def add_fare_attribute(self, fare_attribute: FareAttribute) -> None:
        self._fare_attributes.append(fare_attribute)

    def get_fare_rules(self) -> list[FareRule]:
        return self._fare_rules

    def get_fare_rule(self, fare_id: str) -> FareRule | None:
        return next((f for f in self._fare_rules if f.fare_id == fare_id), None)

    def add_fare_rule(self, fare_rule: FareRule) -> None:
        self._fare_rules.append(fare_rule)

    # Shapes ------------------------------------------------------------------------------

    def get_shapes(self) -> list[ShapePoint]:
        return self._shapes

    def get_shape(self, shape_id: str, sort_by_sequence: bool = True) -> list[ShapePoint]:
        """Points of one shape, ordered by shape_pt_sequence unless told otherwise."""
        points = [p for p in self._shapes if p.shape_id == shape_id]
        if sort_by_sequence:
            points.sort(key=lambda p: p.shape_pt_sequence)
        return points

    def add_shape(self, shape_point: ShapePoint) -> None:
        self._shapes.append(shape_point)

    # Frequencies -------------------------------------------------------------------------

    def get_frequencies(self) -> list[Frequency]:
        return self._frequencies

    def get_frequencies_for_trip(self, trip_id: str) -> list[Frequency]:
        return [f for f in self._frequencies if f.trip_id == trip_id]

    def add_frequency(self, frequency: Frequency) -> None:
        self._frequencies.append(frequency)

    # Transfers ---------------------------------------------------------------------------

    def get_transfers(self) -> list[Transfer]:
        return self._transfers

    def get_transfer(self, from_stop_id: str, to_stop_id: str) -> Transfer | None:
        return next(
            (
                t
                for t in self._transfers
                if t.from_stop_id == from_stop_id and t.to_stop_id == to_stop_id
            ),
            None,
        )

    def add_transfer(self, transfer: Transfer) -> None:
        self._transfers.append(transfer)

    # Pathways and levels -----------------------------------------------------------------

    def get_pathways(self) -> list[Pathway]:
        return self._pathways

    def get_pathway(self, pathway_id: str) -> Pathway | None:
        return next((p for p in self._pathways if p.pathway_id == pathway_id), None)

    def get_pathway_between(self, from_stop_id: str, to_stop_id: str) -> Pathway | None:
        return next(
            (
                p
                for p in self._pathways
                if p.from_stop_id == from_stop_id and p.to_stop_id == to_stop_id
            ),
            None,
        )

    def add_pathway(self, pathway: Pathway) -> None:
        self._pathways.append(pathway)

    def get_levels(self) -> list[Level]:
        return self._levels

    def get_level(self, level_id: str) -> Level | None:
        return next((lvl for lvl in self._levels if lvl.level_id == level_id), None)

    def add_level(self, level: Level) -> None:
        self._levels.append(level)

    # Feed info, translations and attributions --------------------------------------------

    def get_feed_info(self) -> FeedInfo:
        return self._feed_info

    def set_feed_info(self, feed_info: FeedInfo) -> None:
        self._feed_info = feed_info

    def get_translations(self) -> list[Translation]:
        return self._translations

    def get_translation(self, table_name: TranslationTable | str) -> Translation | None:
        """First translation of the given table."""
        table_name = TranslationTable(table_name)
        return next((t for t in self._translations if t.table_name is table_name), None)

    def add_translation(self, translation: Translation) -> None:
        self._translations.append(translation)

    def get_attributions(self) -> list[Attribution]:
        return self._attributions

    def add_attribution(self, attribution: Attribution) -> None:
        self._attributions.append(attribution)
