"""Result codes and exceptions shared by the parsing layers.

Codecs and entity builders raise the exceptions below. The CSV reader and the
feed container convert them into ``Result`` values so callers can branch on a
``ResultCode`` instead of catching.
"""

from enum import Enum

from pydantic import BaseModel


class ResultCode(str, Enum):
    """Outcome of a parsing operation."""

    OK = "ok"
    END_OF_FILE = "end_of_file"
    ERROR_INVALID_GTFS_PATH = "invalid_gtfs_path"
    ERROR_FILE_ABSENT = "file_absent"
    ERROR_REQUIRED_FIELD_ABSENT = "required_field_absent"
    ERROR_INVALID_FIELD_FORMAT = "invalid_field_format"


class Result(BaseModel):
    """Result code plus a human-readable message for diagnostics."""

    code: ResultCode = ResultCode.OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.code is ResultCode.OK

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResultCode):
            return self.code is other
        if isinstance(other, Result):
            return self.code is other.code and self.message == other.message
        return NotImplemented


class GTFSError(Exception):
    """Base class for GTFS parsing errors."""

    code: ResultCode = ResultCode.ERROR_INVALID_FIELD_FORMAT

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_result(self, context: str | None = None) -> Result:
        """Convert the error into a Result, optionally prefixed with a location."""
        message = f"{context}: {self.message}" if context else self.message
        return Result(code=self.code, message=message)


class InvalidGTFSPath(GTFSError):
    """The dataset path does not exist or is not a directory/ZIP archive."""

    code = ResultCode.ERROR_INVALID_GTFS_PATH


class FileAbsent(GTFSError, FileNotFoundError):
    """A dataset file is missing."""

    code = ResultCode.ERROR_FILE_ABSENT


class RequiredFieldAbsent(GTFSError, LookupError):
    """A required column or a conditionally required combination is missing."""

    code = ResultCode.ERROR_REQUIRED_FIELD_ABSENT


class InvalidFieldFormat(GTFSError, ValueError):
    """A field value (or a whole row) cannot be parsed."""

    code = ResultCode.ERROR_INVALID_FIELD_FORMAT
    prefix = "Invalid GTFS field format. "

    def __str__(self) -> str:
        return self.prefix + self.message


class CoordinateOutOfRange(InvalidFieldFormat):
    """A latitude or longitude is outside WGS84 decimal degrees."""
