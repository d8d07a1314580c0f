"""
checkpoint.py

Raw page responses are written to disk before they are decoded so a run
can be reprocessed later without querying the API again. Existing files
are never overwritten.
"""

import json
import logging
import os
import re

from src.errors import DecodeError, FilesystemError

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 1000

# <name>_page_<N>.json, or <name>_page_<N>_<attempt>_<N>.json after a collision
_BODY_NAME = re.compile(r"_page_(\d+)(?:_(\d+)_\d+)?\.json$")


def find_new_file_name(file_name: str, page: int,
                       max_attempts: int = MAX_NAME_ATTEMPTS) -> str:
    """
    Return `file_name` if nothing exists there yet, otherwise the first free
    `<stem>_<attempt>_<page>.json` for attempt = 0, 1, 2, ...
    """
    if not os.path.exists(file_name):
        return file_name

    stem, ext = os.path.splitext(file_name)
    ext = ext or '.json'
    for attempt in range(max_attempts):
        candidate = f"{stem}_{attempt}_{page}{ext}"
        if not os.path.exists(candidate):
            return candidate

    raise FilesystemError(
        f"No free file name for {file_name} after {max_attempts} attempts"
    )


class PageCheckpointer:
    def __init__(self, folder: str, name: str, max_attempts: int = MAX_NAME_ATTEMPTS):
        self.folder = folder
        self.name = name
        self.max_attempts = max_attempts

    def save(self, response, page_number: int = None):
        """
        Write the response body and its headers to two new files in the
        checkpoint folder. Returns (body_path, headers_path).
        """
        page_number = response.page_number if page_number is None else page_number
        body_path = self._write(f"{self.name}_page_{page_number}.json",
                                response.body, page_number)
        headers_path = self._write(f"{self.name}_response_headers_page_{page_number}.json",
                                   json.dumps(dict(response.headers), indent=2),
                                   page_number)
        return body_path, headers_path

    def _write(self, file_name: str, data: str, page_number: int) -> str:
        try:
            os.makedirs(self.folder, exist_ok=True)
            path = find_new_file_name(os.path.join(self.folder, file_name),
                                      page_number, self.max_attempts)
            # 'x' refuses to open a file that appeared after the name check
            with open(path, 'x', encoding='utf-8') as f:
                f.write(data if data is not None else '')
        except OSError as e:
            raise FilesystemError(f"Could not write checkpoint {file_name}: {e}") from e
        logger.debug("Saved checkpoint %s", path)
        return path


def _page_order(file_name: str):
    match = _BODY_NAME.search(file_name)
    if match is None:
        return (float('inf'), 0, file_name)
    attempt = match.group(2)
    return (int(match.group(1)), -1 if attempt is None else int(attempt), file_name)


def checkpoint_files(folder: str, name: str = None):
    """
    Body checkpoints in `folder`, header files excluded, in page order.
    With `name`, only checkpoints written under that name are returned.
    """
    try:
        names = os.listdir(folder)
    except OSError as e:
        raise FilesystemError(f"Could not read checkpoint folder {folder}: {e}") from e

    prefix = f"{name}_page_" if name else None
    body_names = [n for n in names
                  if n.endswith('.json') and 'headers' not in n
                  and (prefix is None or n.startswith(prefix))]
    return [os.path.join(folder, n) for n in sorted(body_names, key=_page_order)]


def iter_checkpoint_records(folder: str, name: str = None):
    """
    Yield every record stored in the body checkpoints of `folder`.
    """
    for path in checkpoint_files(folder, name):
        with open(path, encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise DecodeError(f"{path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise DecodeError(f"{path} does not hold a list of records")
        yield from data
