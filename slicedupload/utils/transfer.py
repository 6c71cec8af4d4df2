# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Object Transfer Utils."""

from __future__ import annotations

import io
import math
import socket
from functools import wraps
from typing import IO, Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError
from tqdm.utils import CallbackIOWrapper

from slicedupload.logging import logger

KiB = 1024
MiB = KiB * KiB
GiB = MiB * KiB
S3_MIN_PART_SIZE = 5 * MiB
S3_MULTIPART_CHUNK_SIZE = 8 * MiB
S3_MULTIPART_THRESHOLD = 8 * MiB
S3_MAX_PART_SIZE = 5 * GiB
NUM_MAX_PARTS = 10000
S3_RETRYABLE_UPLOAD_ERRORS = (
    socket.timeout,
    ConnectionError,
    BotoCoreError,
    ClientError,
)
PART_MAX_RETRIES = 5
AWS_RETRIES = 10

# Per-file part concurrency. A lone transfer gets the whole transport, many
# concurrent transfers share it.
SINGLE_FILE_CONCURRENCY = 20
MULTI_FILE_CONCURRENCY = 5

DEFAULT_BATCH_SIZE = 50
DEFAULT_MAX_RETRIES_PER_BATCH = 10


def get_transfer_concurrency(num_transfers: int) -> int:
    """Get the per-file part concurrency for a round of `num_transfers` transfers."""
    return SINGLE_FILE_CONCURRENCY if num_transfers <= 1 else MULTI_FILE_CONCURRENCY


def content_disposition(name: str) -> str:
    """Build the ``Content-Disposition`` value of an uploaded object."""
    return f"attachment; filename={name};"


class PartReader(CallbackIOWrapper):
    """Seekable view over one part of an open file.

    Position 0 is the first byte of the part and reads stop at its end, so the
    part can be sent as a request body without buffering it. Every byte of the
    part is reported to `callback` once, even when the body is rewound and read
    again for checksums or retries.
    """

    def __init__(
        self,
        callback: Callable[[int], Any],
        stream: IO[bytes],
        offset: int,
        length: int,
    ) -> None:
        """Initialize PartReader."""
        super().__init__(callback, stream, "read")
        self.wrapper_setattr("_offset", offset)
        self.wrapper_setattr("_length", length)
        self.wrapper_setattr("_pos", 0)
        self.wrapper_setattr("_reported", 0)
        stream.seek(offset)

        func = stream.read

        @wraps(func)
        def read(size: Optional[int] = -1) -> bytes:
            remaining = self._length - self._pos
            if size is None or size < 0 or size > remaining:
                size = remaining
            data = func(size) if size > 0 else b""
            self.wrapper_setattr("_pos", self._pos + len(data))
            if self._pos > self._reported:
                callback(self._pos - self._reported)
                self.wrapper_setattr("_reported", self._pos)
            return data

        self.wrapper_setattr("read", read)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move to a position relative to the part."""
        if whence == io.SEEK_SET:
            pos = offset
        elif whence == io.SEEK_CUR:
            pos = self._pos + offset
        elif whence == io.SEEK_END:
            pos = self._length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        pos = min(max(pos, 0), self._length)
        self._wrapped.seek(self._offset + pos)
        self.wrapper_setattr("_pos", pos)
        return pos

    def tell(self) -> int:
        """Get the position relative to the part."""
        return self._pos

    def seekable(self) -> bool:
        """Part views are always seekable."""
        return True

    def __len__(self) -> int:
        """Get the part length."""
        return self._length


# ChunksizeAdjuster follows the part size rules of boto/s3transfer.
# See https://github.com/boto/s3transfer.
class ChunksizeAdjuster:
    """Picks a multipart part size that S3 accepts for a given file."""

    def __init__(
        self,
        max_size: int = S3_MAX_PART_SIZE,
        min_size: int = S3_MIN_PART_SIZE,
        max_parts: int = NUM_MAX_PARTS,
    ) -> None:
        """Initialize ChunksizeAdjuster."""
        self._max_size = max_size
        self._min_size = min_size
        self._max_parts = max_parts

    def adjust_chunksize(
        self, current_chunksize: int, file_size: Optional[int] = None
    ) -> int:
        """Get the part size to upload a file with.

        The requested size is doubled until the file fits in `max_parts` parts, and
        is then clamped to the part size limits.

        Args:
            current_chunksize (int): Requested part size.
            file_size (Optional[int], optional): Size of the file. The part count is
                not checked when it is None.

        Returns:
            int: The part size to use.

        """
        part_size = current_chunksize
        if file_size is not None:
            while math.ceil(file_size / part_size) > self._max_parts:
                part_size *= 2
        part_size = min(max(part_size, self._min_size), self._max_size)

        if part_size != current_chunksize:
            logger.debug(
                "Part size is adjusted from %s to %s (file size: %s).",
                current_chunksize,
                part_size,
                file_size,
            )
        return part_size
