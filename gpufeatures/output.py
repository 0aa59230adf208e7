"""Writing labels to a stream or a file."""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from typing import Mapping, Protocol, TextIO

logger = logging.getLogger(__name__)

_FILE_MODE = 0o644


class Outputer(Protocol):
    """Something that can write out a set of labels."""

    def output(self, labels: Mapping[str, str]) -> None:
        """Write out the labels."""


def _render(labels: Mapping[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in labels.items())


class ToWriter:
    """Writes labels as key=value lines to a text stream."""

    def __init__(self, writer: TextIO) -> None:
        self.writer = writer

    def output(self, labels: Mapping[str, str]) -> None:
        """Write one key=value line per label."""
        self.writer.write(_render(labels))


class ToFile:
    """Writes labels as key=value lines to a file, replacing it atomically."""

    def __init__(self, path: str) -> None:
        self.path = path

    def output(self, labels: Mapping[str, str]) -> None:
        """Write the labels to a temporary file and move it into place."""
        logger.info("Writing labels to output file %s", self.path)
        content = _render(labels)
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".labels-")
        except OSError as exc:
            raise OSError(f"error atomically writing file '{self.path}': {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, _FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise OSError(f"error atomically writing file '{self.path}': {exc}") from exc


def to_file(path: str) -> Outputer:
    """Return an outputer for the path; an empty path writes to standard output."""
    if not path:
        return ToWriter(sys.stdout)
    return ToFile(path)