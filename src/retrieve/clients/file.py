"""
File client: handles file:// URIs with plain local file I/O.

    res = retrieve.open("file:///home/user/todo.txt")
    res.read()          # b"TODO: Write some code."
    res.close()
"""

import logging
import os
import stat
from datetime import datetime, timezone
from typing import IO, Optional
from urllib.parse import unquote

from ..client import Client, ResourceStateError


logger = logging.getLogger(__name__)

VALID_MODES = frozenset({"rb", "wb", "ab", "xb", "r+b", "w+b", "a+b"})

FILE_TYPES = (
    (stat.S_ISREG, "file"),
    (stat.S_ISDIR, "directory"),
    (stat.S_ISCHR, "character_special"),
    (stat.S_ISBLK, "block_special"),
    (stat.S_ISFIFO, "fifo"),
    (stat.S_ISLNK, "link"),
    (stat.S_ISSOCK, "socket"),
)


def file_type(mode: int) -> Optional[str]:
    """Name the kind of file an st_mode describes ("file", "fifo"...)."""
    for test, name in FILE_TYPES:
        if test(mode):
            return name
    return None


class FileClient(Client):
    """Client for the file scheme."""

    scheme = "file"

    def __init__(self, resource):
        super().__init__(resource)
        uri = resource.uri
        if uri.query or uri.authority not in ("", "localhost"):
            raise ValueError(f"Resource cannot be handled by client: '{uri}'")
        self._file: Optional[IO[bytes]] = None

    @property
    def path(self) -> str:
        return unquote(self.resource.uri.path)

    def open(self, mode: str = "rb"):
        """
        Open the file.

        Args:
            mode: A binary open() mode: rb, wb, ab, xb, r+b, w+b or a+b.
        """
        if mode not in VALID_MODES:
            raise ValueError(f"Invalid mode: {mode!r}")
        logger.debug(f"Opening {self.path} with mode {mode}")
        self._file = open(self.path, mode)
        self._process_metadata(os.fstat(self._file.fileno()))
        return self.resource

    def _process_metadata(self, info: os.stat_result) -> None:
        """Load the file's stat information into the resource."""
        metadata = self.resource.metadata
        metadata["path"] = self.path
        metadata["size"] = info.st_size
        metadata["access_time"] = datetime.fromtimestamp(info.st_atime, tz=timezone.utc)
        metadata["change_time"] = datetime.fromtimestamp(info.st_ctime, tz=timezone.utc)
        metadata["modified_time"] = datetime.fromtimestamp(info.st_mtime, tz=timezone.utc)
        metadata["file_type"] = file_type(info.st_mode)
        metadata["file_mode"] = info.st_mode
        metadata["user_id"] = info.st_uid
        metadata["group_id"] = info.st_gid

    def read(self, n: Optional[int] = None) -> bytes:
        if self._file is None:
            raise ResourceStateError("No file available.")
        return self._file.read(-1 if n is None else n)

    def write(self, data: bytes) -> int:
        if self._file is None:
            raise ResourceStateError("No file available.")
        return self._file.write(data)

    def close(self) -> None:
        if self._file is None:
            raise ResourceStateError("No file to close.")
        self._file.close()
        self._file = None
