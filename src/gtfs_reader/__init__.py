"""Reader for General Transit Feed Specification (GTFS) static datasets."""

from gtfs_reader.data.config import ParserConfig, RowLengthPolicy, get_parser_config
from gtfs_reader.errors import (
    CoordinateOutOfRange,
    FileAbsent,
    GTFSError,
    InvalidFieldFormat,
    InvalidGTFSPath,
    RequiredFieldAbsent,
    Result,
    ResultCode,
)
from gtfs_reader.models.fields import Date, Time
from gtfs_reader.services.feed import Feed

__version__ = "0.1.0"

__all__ = [
    "CoordinateOutOfRange",
    "Date",
    "Feed",
    "FileAbsent",
    "GTFSError",
    "InvalidFieldFormat",
    "InvalidGTFSPath",
    "ParserConfig",
    "RequiredFieldAbsent",
    "Result",
    "ResultCode",
    "RowLengthPolicy",
    "Time",
    "get_parser_config",
]
