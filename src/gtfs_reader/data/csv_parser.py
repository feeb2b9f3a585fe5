"""CSV tokenizer and row parser for GTFS files.

GTFS files use a fixed comma delimiter and double-quote quoting. There is no
escaped-quote convention: every quote toggles quoted mode and is dropped.
"""

import logging
from typing import TextIO

from gtfs_reader.data.config import ParserConfig, RowLengthPolicy, get_parser_config
from gtfs_reader.data.source import FeedSource
from gtfs_reader.errors import GTFSError, InvalidFieldFormat, Result, ResultCode

logger = logging.getLogger(__name__)

# Column name -> raw value for one data row
ParsedCsvRow = dict[str, str]

DELIMITER = ","
QUOTE = '"'
SPACE = " "
DROPPED_CHARS = "\r\t"

# UTF-8 byte order mark, decoded and as raw bytes read through a Latin-1 decode
UTF8_BOM = "\ufeff"
UTF8_BOM_RAW = "\xef\xbb\xbf"

# Lines that are left of a blank line once the "\n" terminator is removed
BLANK_LINES = frozenset({"", "\r"})


def split_record(record: str | bytes, is_header: bool = False) -> list[str]:
    """Split one CSV line into its field values.

    Outside quotes, leading spaces of a field are skipped and trailing spaces
    are trimmed when the field is closed. Inside quotes, commas and spaces are
    kept. Carriage returns and tabs are dropped everywhere.

    Always returns one more token than there are delimiters outside quotes.

    Args:
        record: The line, without its "\\n" terminator. Bytes are decoded as UTF-8, invalid
            sequences become U+FFFD.
        is_header: Skip a leading UTF-8 byte order mark.

    Example: '27681 ,,"Sisters, OR",1' -> ["27681", "", "Sisters, OR", "1"]
    """
    if isinstance(record, bytes):
        record = record.decode("utf-8", errors="replace")

    if is_header:
        if record.startswith(UTF8_BOM):
            record = record[len(UTF8_BOM) :]
        elif record.startswith(UTF8_BOM_RAW):
            record = record[len(UTF8_BOM_RAW) :]

    fields: list[str] = []
    token: list[str] = []
    inside_quotes = False
    # token length at the last quote; only what follows it is trimmed
    quoted_end = 0

    for char in record:
        if char == QUOTE:
            inside_quotes = not inside_quotes
            quoted_end = len(token)
            continue

        if char == SPACE:
            # skip spaces until the token starts
            if inside_quotes or token:
                token.append(char)
            continue

        if char == DELIMITER and not inside_quotes:
            fields.append(_close_token(token, quoted_end))
            token = []
            quoted_end = 0
            continue

        if char not in DROPPED_CHARS:
            token.append(char)

    fields.append(_close_token(token, quoted_end))
    return fields


def _close_token(token: list[str], quoted_end: int) -> str:
    return "".join(token[:quoted_end]) + "".join(token[quoted_end:]).rstrip(SPACE)


def parse_row(
    field_sequence: list[str],
    tokens: list[str],
    policy: RowLengthPolicy = RowLengthPolicy.ERROR,
) -> ParsedCsvRow:
    """Pair header column names with the tokens of one data row.

    Args:
        field_sequence: Column names from the header line.
        tokens: Field values from split_record().
        policy: What to do when the token count differs from the column count.

    Returns:
        Mapping of column name to value. Empty if the row was skipped by policy.

    Raises:
        InvalidFieldFormat: If the counts differ and the policy is ERROR.
    """
    if len(tokens) != len(field_sequence):
        if policy is RowLengthPolicy.SKIP:
            return {}
        raise InvalidFieldFormat(
            f"Row has {len(tokens)} fields but the header has {len(field_sequence)}: {tokens}"
        )
    return dict(zip(field_sequence, tokens))


class CsvParser:
    """Reads one GTFS file of a feed source row by row.

    Usage:
        with CsvParser(source) as parser:
            result = parser.read_header("stops.txt")
            while True:
                result, row = parser.read_row()
                if result.code is ResultCode.END_OF_FILE:
                    break
    """

    split_record = staticmethod(split_record)

    def __init__(self, source: FeedSource, config: ParserConfig | None = None):
        """Initialize the parser.

        Args:
            source: Feed source the files are opened from.
            config: Parser settings. Defaults to the environment configuration.
        """
        self._source = source
        self._config = config or get_parser_config()
        self._stream: TextIO | None = None
        self.filename = ""
        self.field_sequence: list[str] = []
        self.line_number = 0

    def __enter__(self) -> "CsvParser":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def location(self) -> str:
        """Current file and line, for diagnostics."""
        return f"{self.filename}:{self.line_number}"

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def read_header(self, filename: str) -> Result:
        """Open a file and capture its column names.

        Returns:
            OK, ERROR_FILE_ABSENT if the file is missing, or
            ERROR_INVALID_FIELD_FORMAT if the header line is missing or empty.
        """
        self.close()
        self.filename = filename
        self.field_sequence = []
        self.line_number = 0

        try:
            self._stream = self._source.open_text(filename, self._config.encoding)
        except GTFSError as e:
            return e.to_result()

        try:
            header = self._readline()
        except UnicodeDecodeError as e:
            return Result(code=ResultCode.ERROR_INVALID_FIELD_FORMAT, message=f"{self.location}: {e}")

        if header is None or header in BLANK_LINES:
            return Result(
                code=ResultCode.ERROR_INVALID_FIELD_FORMAT,
                message=f"{filename} has no header line",
            )

        self.field_sequence = split_record(header, is_header=True)
        return Result()

    def read_row(self) -> tuple[Result, ParsedCsvRow]:
        """Read the next data row.

        Returns:
            (END_OF_FILE, {}) at the end of the file, (OK, {}) for a blank line
            or a row skipped by the row length policy, (OK, row) for a row, or an
            ERROR_INVALID_FIELD_FORMAT result for a malformed row.

        Raises:
            RuntimeError: If read_header() has not opened a file.
        """
        if self._stream is None:
            raise RuntimeError("No file open - call read_header() first")

        try:
            line = self._readline()
        except UnicodeDecodeError as e:
            return Result(code=ResultCode.ERROR_INVALID_FIELD_FORMAT, message=f"{self.location}: {e}"), {}

        if line is None:
            return Result(code=ResultCode.END_OF_FILE), {}

        if line in BLANK_LINES:
            return Result(), {}

        max_length = self._config.max_line_length
        if max_length is not None and len(line) > max_length:
            return (
                Result(
                    code=ResultCode.ERROR_INVALID_FIELD_FORMAT,
                    message=f"{self.location}: line is longer than {max_length} characters",
                ),
                {},
            )

        tokens = split_record(line)
        try:
            row = parse_row(self.field_sequence, tokens, self._config.row_length_policy)
        except InvalidFieldFormat as e:
            return e.to_result(self.location), {}

        if not row:
            logger.warning(
                f"{self.location}: skipping row with {len(tokens)} fields "
                f"(header has {len(self.field_sequence)})"
            )
        return Result(), row

    def _readline(self) -> str | None:
        """Read one line without its "\\n" terminator; None at end of file."""
        line = self._stream.readline()
        if not line:
            return None
        self.line_number += 1
        if line.endswith("\n"):
            line = line[:-1]
        return line
