"""Access to the files of a GTFS dataset stored in a directory or a ZIP archive."""

import io
import logging
import zipfile
from pathlib import Path
from typing import TextIO

from gtfs_reader.errors import FileAbsent, InvalidGTFSPath

logger = logging.getLogger(__name__)


class FeedSource:
    """Opens named dataset files as text streams.

    Streams are opened with newline="" so that carriage returns reach the
    tokenizer untouched.

    Usage:
        with open_source(path) as source:
            with source.open_text("stops.txt") as stream:
                header = stream.readline()
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def __enter__(self) -> "FeedSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release any resources held by the source."""

    def exists(self, filename: str) -> bool:
        raise NotImplementedError

    def open_text(self, filename: str, encoding: str = "utf-8") -> TextIO:
        """Open a dataset file for reading.

        Raises:
            FileAbsent: If the file is not part of the dataset.
        """
        raise NotImplementedError


class DirectorySource(FeedSource):
    """GTFS files laid out in a directory."""

    def exists(self, filename: str) -> bool:
        return (self.path / filename).is_file()

    def open_text(self, filename: str, encoding: str = "utf-8") -> TextIO:
        csv_path = self.path / filename
        if not csv_path.is_file():
            raise FileAbsent(f"{filename} not found in {self.path}")
        return open(csv_path, encoding=encoding, newline="")


class ZipSource(FeedSource):
    """GTFS files stored at the root of a ZIP archive."""

    def __init__(self, path: Path):
        super().__init__(path)
        self._zf: zipfile.ZipFile | None = None

    def _archive(self) -> zipfile.ZipFile:
        if self._zf is None:
            try:
                self._zf = zipfile.ZipFile(self.path, "r")
            except zipfile.BadZipFile as e:
                raise InvalidGTFSPath(f"Not a valid ZIP archive: {self.path}") from e
        return self._zf

    def close(self) -> None:
        if self._zf is not None:
            self._zf.close()
            self._zf = None

    def exists(self, filename: str) -> bool:
        return filename in self._archive().namelist()

    def open_text(self, filename: str, encoding: str = "utf-8") -> TextIO:
        if not self.exists(filename):
            raise FileAbsent(f"{filename} not found in ZIP {self.path}")
        # Wrap binary member in text mode
        return io.TextIOWrapper(self._archive().open(filename), encoding=encoding, newline="")


def open_source(gtfs_path: Path | str) -> FeedSource:
    """Pick the source implementation for a GTFS path.

    Args:
        gtfs_path: Path to a GTFS directory or ZIP file.

    Raises:
        InvalidGTFSPath: If the path doesn't exist or is neither a directory nor a ZIP file.
    """
    gtfs_path = Path(gtfs_path)
    if not gtfs_path.exists():
        raise InvalidGTFSPath(f"Invalid path {gtfs_path}")

    if gtfs_path.is_dir():
        return DirectorySource(gtfs_path)
    if gtfs_path.is_file() and gtfs_path.suffix == ".zip":
        logger.debug(f"Reading GTFS from ZIP archive {gtfs_path}")
        return ZipSource(gtfs_path)

    raise InvalidGTFSPath(f"Expected a directory or ZIP file: {gtfs_path}")
