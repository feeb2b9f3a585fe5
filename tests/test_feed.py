import logging
import zipfile
from pathlib import Path

import pytest

from gtfs_reader.data.config import ParserConfig
from gtfs_reader.errors import ResultCode
from gtfs_reader.models.enums import RouteType, TranslationTable
from gtfs_reader.models.fields import Date, Time
from gtfs_reader.models.gtfs import Agency, Level, Stop
from gtfs_reader.services.feed import Feed


@pytest.fixture
def sample_gtfs_dir(tmp_path: Path) -> Path:
    """Create a sample GTFS directory with minimal valid data."""
    gtfs_dir = tmp_path / "gtfs"
    gtfs_dir.mkdir()

    # agency.txt
    (gtfs_dir / "agency.txt").write_text(
        "agency_id,agency_name,agency_url,agency_timezone\n"
        "STM,Société de transport de Montréal,http://www.stm.info,America/Montreal\n",
        encoding="utf-8",
    )

    # routes.txt
    (gtfs_dir / "routes.txt").write_text(
        "route_id,agency_id,route_short_name,route_long_name,route_type,route_url,route_color,route_text_color\n"
        "1,STM,Green,Ligne verte,1,http://stm.info/green,008E4F,FFFFFF\n"
        "24,STM,24,Sherbrooke,3,http://stm.info/24,000000,FFFFFF\n",
        encoding="utf-8",
    )

    # stops.txt
    (gtfs_dir / "stops.txt").write_text(
        "stop_id,stop_code,stop_name,stop_lat,stop_lon,stop_url,location_type,parent_station,wheelchair_boarding\n"
        "BERRI,BERRI,Berri-UQAM,45.515,-73.561,,1,,1\n"
        "BERRI-1,51234,Berri-UQAM - Green Line,45.515,-73.561,,0,BERRI,1\n"
        '51001,51001,"Sherbrooke / Saint-Denis",45.518,-73.568,,0,,1\n',
        encoding="utf-8",
    )

    # calendar.txt
    (gtfs_dir / "calendar.txt").write_text(
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date\n"
        "WEEKDAY,1,1,1,1,1,0,0,20240101,20241231\n"
        "WEEKEND,0,0,0,0,0,1,1,20240101,20241231\n",
        encoding="utf-8",
    )

    # calendar_dates.txt
    (gtfs_dir / "calendar_dates.txt").write_text(
        "service_id,date,exception_type\n"
        "WEEKDAY,20240704,2\n"
        "WEEKDAY,20240101,2\n"
        "WEEKEND,20240101,1\n",
        encoding="utf-8",
    )

    # trips.txt
    (gtfs_dir / "trips.txt").write_text(
        "trip_id,route_id,service_id,trip_headsign,direction_id,shape_id,wheelchair_accessible\n"
        "TRIP1,1,WEEKDAY,Angrignon,0,SHAPE1,1\n"
        "TRIP2,24,WEEKDAY,Sherbrooke / Cavendish,0,SHAPE2,1\n",
        encoding="utf-8",
    )

    # stop_times.txt, out of sequence order on purpose
    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence,pickup_type\n"
        "TRIP1,08:05:00,08:05:00,51001,2,0\n"
        "TRIP1,08:00:00,08:00:00,BERRI-1,1,0\n"
        "TRIP2,25:10:00,25:10:00,51001,1,0\n",
        encoding="utf-8",
    )

    # shapes.txt
    (gtfs_dir / "shapes.txt").write_text(
        "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence\n"
        "SHAPE1,45.518,-73.568,2\n"
        "SHAPE1,45.515,-73.561,1\n",
        encoding="utf-8",
    )

    # feed_info.txt
    (gtfs_dir / "feed_info.txt").write_text(
        "feed_publisher_name,feed_publisher_url,feed_lang,feed_start_date,feed_end_date,feed_version\n"
        "STM,http://www.stm.info,fr,20240101,20241231,2024.1\n",
        encoding="utf-8",
    )

    return gtfs_dir


@pytest.fixture
def sample_gtfs_zip(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a sample GTFS ZIP file from the directory."""
    zip_path = tmp_path / "gtfs.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        for file_path in sample_gtfs_dir.iterdir():
            zf.write(file_path, file_path.name)
    return zip_path


@pytest.fixture
def config() -> ParserConfig:
    return ParserConfig()


class TestReadFeed:
    """Tests for Feed.read_feed()."""

    def test_read_from_directory(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test reading GTFS data from a directory."""
        feed = Feed(sample_gtfs_dir, config)

        result = feed.read_feed()

        assert result.ok, result.message
        assert len(feed.get_agencies()) == 1
        assert len(feed.get_routes()) == 2
        assert len(feed.get_stops()) == 3
        assert len(feed.get_calendar()) == 2
        assert len(feed.get_calendar_dates()) == 3
        assert len(feed.get_trips()) == 2
        assert len(feed.get_stop_times()) == 3
        assert len(feed.get_shapes()) == 2
        assert feed.get_feed_info().feed_version == "2024.1"

    def test_read_from_zip(
        self, sample_gtfs_dir: Path, sample_gtfs_zip: Path, config: ParserConfig
    ) -> None:
        """Test reading from a ZIP file gives the same records."""
        from_dir = Feed(sample_gtfs_dir, config)
        from_zip = Feed(sample_gtfs_zip, config)

        assert from_dir.read_feed().ok
        assert from_zip.read_feed().ok

        assert from_zip.get_stops() == from_dir.get_stops()
        assert from_zip.get_stop_times() == from_dir.get_stop_times()
        assert len(from_zip.get_routes()) == 2

    def test_missing_path(self, tmp_path: Path, config: ParserConfig) -> None:
        """Test a path that doesn't exist."""
        feed = Feed(tmp_path / "nonexistent", config)
        assert feed.read_feed() == ResultCode.ERROR_INVALID_GTFS_PATH

    def test_not_a_zip(self, tmp_path: Path, config: ParserConfig) -> None:
        """Test a file that is neither a directory nor a ZIP archive."""
        bogus = tmp_path / "gtfs.txt"
        bogus.write_text("not gtfs")
        assert Feed(bogus, config).read_feed() == ResultCode.ERROR_INVALID_GTFS_PATH

    def test_corrupt_zip(self, tmp_path: Path, config: ParserConfig) -> None:
        """Test a .zip file that isn't a ZIP archive."""
        bogus = tmp_path / "gtfs.zip"
        bogus.write_bytes(b"not a zip")
        assert Feed(bogus, config).read_feed() == ResultCode.ERROR_INVALID_GTFS_PATH

    def test_missing_required_file(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test that a missing required file aborts the read."""
        (sample_gtfs_dir / "trips.txt").unlink()
        result = Feed(sample_gtfs_dir, config).read_feed()
        assert result.code is ResultCode.ERROR_FILE_ABSENT
        assert "trips.txt" in result.message

    def test_calendar_dates_only(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test that calendar.txt may be replaced by calendar_dates.txt."""
        (sample_gtfs_dir / "calendar.txt").unlink()
        feed = Feed(sample_gtfs_dir, config)
        assert feed.read_feed().ok
        assert feed.get_calendar() == []

    def test_no_calendar_at_all(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test that at least one calendar file must be present."""
        (sample_gtfs_dir / "calendar.txt").unlink()
        (sample_gtfs_dir / "calendar_dates.txt").unlink()
        assert Feed(sample_gtfs_dir, config).read_feed() == ResultCode.ERROR_FILE_ABSENT

    def test_missing_optional_files_logged(
        self, sample_gtfs_dir: Path, config: ParserConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test missing optional files are ignored with a warning."""
        caplog.set_level(logging.WARNING, logger="gtfs_reader.services.feed")

        feed = Feed(sample_gtfs_dir, config)

        assert feed.read_feed().ok
        assert feed.get_transfers() == []
        assert "Optional file transfers.txt not found" in caplog.text
        assert "Optional file shapes.txt not found" not in caplog.text

    def test_error_in_optional_file(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test a malformed optional file still fails the read."""
        (sample_gtfs_dir / "levels.txt").write_text("level_id,level_index\nL0,ground\n")
        result = Feed(sample_gtfs_dir, config).read_feed()
        assert result.code is ResultCode.ERROR_INVALID_FIELD_FORMAT
        assert result.message.startswith("levels.txt:2: ")


class TestReadFile:
    """Tests for the per-file read methods."""

    def test_success_message(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        result = Feed(sample_gtfs_dir, config).read_routes()
        assert result.ok
        assert result.message == "Parsed routes.txt"

    def test_error_leaves_collection_unchanged(
        self, sample_gtfs_dir: Path, config: ParserConfig
    ) -> None:
        """Test a failed read keeps the previously read records."""
        feed = Feed(sample_gtfs_dir, config)
        assert feed.read_stops().ok

        with open(sample_gtfs_dir / "stops.txt", "a", encoding="utf-8") as f:
            f.write("BAD,BAD,Bad stop,95.0,-73.0,,0,,1\n")

        result = feed.read_stops()
        assert result.code is ResultCode.ERROR_INVALID_FIELD_FORMAT
        assert result.message.startswith("stops.txt:5: ")
        assert len(feed.get_stops()) == 3

    def test_required_field_absent(self, sample_gtfs_dir: Path, config: ParserConfig) -> None:
        """Test a row without a required column value set reports its line."""
        (sample_gtfs_dir / "routes.txt").write_text(
            "route_id,route_short_name,route_long_name,route_type\n1,Green,,1\n2,,,3\n"
        )
        result = Feed(sample_gtfs_dir, config).read_routes()
        assert result.code is ResultCode.ERROR_REQUIRED_FIELD_ABSENT
        assert result.message.startswith("routes.txt:3: ")

    def test_skip_invalid_rows(
        self, sample_gtfs_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test best-effort mode skips malformed rows."""
        caplog.set_level(logging.WARNING, logger="gtfs_reader.services.feed")
        (sample_gtfs_dir / "routes.txt").write_text(
            "route_id,route_short_name,route_long_name,route_type\n"
            "1,Green,,1\n"
            "2,,,3\n"
            "3,Orange,,1,extra\n"
            "4,Blue,,99\n"
            "5,Yellow,,1\n"
        )
        feed = Feed(sample_gtfs_dir, ParserConfig(skip_invalid_rows=True))

        result = feed.read_routes()

        assert result.ok
        assert [r.route_id for r in feed.get_routes()] == ["1", "5"]
        assert "routes.txt:3" in caplog.text

    def test_agency_id_required_for_several_agencies(
        self, sample_gtfs_dir: Path, config: ParserConfig
    ) -> None:
        """Test every agency needs an id in a multi-agency feed."""
        (sample_gtfs_dir / "agency.txt").write_text(
            "agency_id,agency_name,agency_url,agency_timezone\n"
            "STM,STM,http://www.stm.info,America/Montreal\n"
            ",EXO,http://exo.quebec,America/Montreal\n"
        )
        feed = Feed(sample_gtfs_dir, config)
        result = feed.read_agencies()
        assert result.code is ResultCode.ERROR_REQUIRED_FIELD_ABSENT
        assert feed.get_agencies() == []

    def test_read_optional_file_standalone(
        self, sample_gtfs_dir: Path, config: ParserConfig
    ) -> None:
        """Test reading a missing optional file on its own."""
        assert Feed(sample_gtfs_dir, config).read_pathways() == ResultCode.ERROR_FILE_ABSENT


class TestFeedLookups:
    """Tests for the feed lookup methods."""

    @pytest.fixture
    def feed(self, sample_gtfs_dir: Path, config: ParserConfig) -> Feed:
        feed = Feed(sample_gtfs_dir, config)
        assert feed.read_feed().ok
        return feed

    def test_get_agency(self, feed: Feed) -> None:
        """Test that an empty id resolves to the only agency."""
        assert feed.get_agency("STM").agency_name == "Société de transport de Montréal"
        assert feed.get_agency("").agency_id == "STM"
        assert feed.get_agency("EXO") is None

    def test_get_agency_empty_id_with_several(self, feed: Feed) -> None:
        feed.add_agency(
            Agency(
                agency_id="EXO",
                agency_name="exo",
                agency_url="http://exo.quebec",
                agency_timezone="America/Montreal",
            )
        )
        assert feed.get_agency("") is None
        assert feed.get_agency("EXO").agency_name == "exo"

    def test_get_stop(self, feed: Feed) -> None:
        stop = feed.get_stop("51001")
        assert stop.stop_name == "Sherbrooke / Saint-Denis"
        assert stop.coordinates_present
        assert feed.get_stop("missing") is None

    def test_get_route(self, feed: Feed) -> None:
        assert feed.get_route("1").route_type is RouteType.SUBWAY

    def test_get_trip(self, feed: Feed) -> None:
        assert feed.get_trip("TRIP2").trip_headsign == "Sherbrooke / Cavendish"

    def test_stop_times_for_trip_sorted(self, feed: Feed) -> None:
        """Test stop times come back in stop_sequence order."""
        stop_times = feed.get_stop_times_for_trip("TRIP1")
        assert [st.stop_sequence for st in stop_times] == [1, 2]

        unsorted = feed.get_stop_times_for_trip("TRIP1", sort_by_sequence=False)
        assert [st.stop_sequence for st in unsorted] == [2, 1]

    def test_stop_times_for_stop(self, feed: Feed) -> None:
        stop_times = feed.get_stop_times_for_stop("51001")
        assert {st.trip_id for st in stop_times} == {"TRIP1", "TRIP2"}
        late = next(st for st in stop_times if st.trip_id == "TRIP2")
        assert late.arrival_time == Time(25, 10, 0)

    def test_calendar(self, feed: Feed) -> None:
        assert feed.get_calendar_item("WEEKEND").saturday == 1
        assert feed.get_calendar_item("HOLIDAY") is None

    def test_calendar_dates_sorted(self, feed: Feed) -> None:
        dates = feed.get_calendar_dates_for_service("WEEKDAY")
        assert [cd.date for cd in dates] == [Date("20240101"), Date("20240704")]

    def test_shape_sorted(self, feed: Feed) -> None:
        points = feed.get_shape("SHAPE1")
        assert [p.shape_pt_sequence for p in points] == [1, 2]
        assert feed.get_shape("SHAPE2") == []

    def test_feed_info(self, feed: Feed) -> None:
        info = feed.get_feed_info()
        assert info.feed_lang == "fr"
        assert info.feed_end_date == Date(2024, 12, 31)

    def test_add_and_lookup(self, feed: Feed) -> None:
        """Test records appended by hand are found by the lookups."""
        feed.add_level(Level(level_id="L0", level_index=0.0, level_name="Street"))
        feed.add_stop(Stop(stop_id="NEW", stop_name="New stop"))

        assert feed.get_level("L0").level_name == "Street"
        assert feed.get_stop("NEW").location_type == 3
        assert len(feed.get_stops()) == 4

    def test_translation_lookup(self, feed: Feed, sample_gtfs_dir: Path) -> None:
        (sample_gtfs_dir / "translations.txt").write_text(
            "table_name,field_name,language,translation,record_id\n"
            "stops,stop_name,en,Berri Station,BERRI\n"
        )
        assert feed.read_translations().ok
        assert feed.get_translation("stops").translation == "Berri Station"
        assert feed.get_translation(TranslationTable.ROUTES) is None

    def test_transfer_and_pathway_lookup(self, feed: Feed, sample_gtfs_dir: Path) -> None:
        (sample_gtfs_dir / "transfers.txt").write_text(
            "from_stop_id,to_stop_id,transfer_type,min_transfer_time\nBERRI-1,51001,2,180\n"
        )
        (sample_gtfs_dir / "pathways.txt").write_text(
            "pathway_id,from_stop_id,to_stop_id,pathway_mode,is_bidirectional\nP1,BERRI,BERRI-1,2,1\n"
        )
        assert feed.read_transfers().ok
        assert feed.read_pathways().ok

        assert feed.get_transfer("BERRI-1", "51001").min_transfer_time == 180
        assert feed.get_transfer("51001", "BERRI-1") is None
        assert feed.get_pathway("P1").to_stop_id == "BERRI-1"
        assert feed.get_pathway_between("BERRI", "BERRI-1").pathway_id == "P1"
