"""Output sinks: an appending NDJSON file and stdout.

FileSink
    Appends to a single ``.ndjson`` file, flushing every *flush_every_n*
    records and on close.  The sink does **not** rotate or compress.

StdoutSink
    Writes raw bytes to ``sys.stdout.buffer``.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


class StdoutSink:
    """Write NDJSON bytes directly to stdout."""

    def write(self, data: bytes) -> None:
        """Write *data* to ``sys.stdout.buffer``.

        Raises
        ------
        BrokenPipeError
            If the stdout consumer has gone away.
        """
        try:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        except BrokenPipeError:
            logger.warning("stdout broken, consumer likely exited")
            raise

    def close(self) -> None:
        """No-op for stdout."""


class FileSink:
    """Appending NDJSON file writer.

    Parameters
    ----------
    path:
        Output file; parent directories are created.
    flush_every_n:
        Flush the write buffer after this many records.
    """

    def __init__(self, path: str, flush_every_n: int = 50) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._flush_every_n = flush_every_n
        self._fh = open(self._path, "ab")
        self._records_since_flush = 0
        self._records_written = 0
        logger.info("Opened output file: %s", self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def records_written(self) -> int:
        return self._records_written

    def write(self, data: bytes) -> None:
        """Append *data* to the file."""
        self._fh.write(data)
        self._records_written += 1
        self._records_since_flush += 1
        if self._records_since_flush >= self._flush_every_n:
            self._flush()

    def close(self) -> None:
        """Flush and fsync the file."""
        if self._fh and not self._fh.closed:
            self._flush()
            os.fsync(self._fh.fileno())
            self._fh.close()
            logger.info("Closed %s (%d records)", self._path.name, self._records_written)

    def _flush(self) -> None:
        if self._fh and not self._fh.closed:
            self._fh.flush()
            self._records_since_flush = 0
