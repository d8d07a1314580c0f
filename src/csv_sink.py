"""
csv_sink.py

Append-friendly CSV output. The header is written once, when the file is
created; every later write appends rows, including writes from later runs.
There is no file locking, so only one process may write a given path.
"""

import logging
import os

import pandas as pd

from src.errors import FilesystemError

logger = logging.getLogger(__name__)


class CsvSink:
    def ensure(self, path: str, header) -> bool:
        """
        Create `path` containing only `header` if it does not exist yet.
        An existing file is left alone and its header is not checked.
        Returns True when the file was created.
        """
        if os.path.exists(path):
            logger.info("File %s already exists", path)
            return False

        try:
            pd.DataFrame(columns=list(header)).to_csv(path, index=False)
        except OSError as e:
            raise FilesystemError(f"Could not create {path}: {e}") from e
        logger.info("Created file %s", path)
        return True

    def append_rows(self, path: str, rows) -> int:
        """
        Append `rows` to `path` and close it again. Returns the row count.
        """
        rows = [list(row) for row in rows]
        if not rows:
            return 0

        try:
            pd.DataFrame(rows, dtype=object).to_csv(path, mode='a', header=False, index=False)
        except OSError as e:
            raise FilesystemError(f"Could not append to {path}: {e}") from e
        logger.info("Added %s rows to %s", len(rows), path)
        return len(rows)
