from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RowLengthPolicy(str, Enum):
    """What to do with a data row whose field count differs from the header."""

    ERROR = "error"  # report INVALID_FIELD_FORMAT with the row content
    SKIP = "skip"  # log a warning and return an empty row


class ParserConfig(BaseSettings):
    """Configuration for reading GTFS files.

    Automatically loads from environment variables and .env file. Fields can
    also be passed by name, e.g. ParserConfig(skip_invalid_rows=True).
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    encoding: str = Field(default="utf-8", alias="GTFS_ENCODING")
    row_length_policy: RowLengthPolicy = Field(
        default=RowLengthPolicy.ERROR, alias="GTFS_ROW_LENGTH_POLICY"
    )

    # Best-effort mode: log and skip rows that fail to parse instead of
    # aborting the whole file on the first error.
    skip_invalid_rows: bool = Field(default=False, alias="GTFS_SKIP_INVALID_ROWS")

    # Upper bound on the length of a single line; None disables the check.
    max_line_length: int | None = Field(default=None, gt=0, alias="GTFS_MAX_LINE_LENGTH")


@lru_cache
def get_parser_config() -> ParserConfig:
    """Get parser configuration (cached singleton).

    Returns:
        ParserConfig with values from .env file or environment variables.
    """
    return ParserConfig()
