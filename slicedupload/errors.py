# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced upload errors."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from slicedupload.schema.resource.v1.transfer import UploadState


class SlicedUploadError(Exception):
    """Sliced upload exception base."""

    kind = "sliced-upload-error"


class InvalidInputError(SlicedUploadError):
    """Upload request is invalid."""

    kind = "invalid-input"

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize InvalidInputError."""
        super().__init__(f"Invalid input: {detail}")


class FileNotReadableError(SlicedUploadError):
    """Local file cannot be read."""

    kind = "file-not-readable"

    def __init__(self, path: str) -> None:
        """Initialize FileNotReadableError."""
        self.path = path
        super().__init__(f"File is not readable: {path}")


class RetriesExhaustedError(SlicedUploadError):
    """A batch could not be uploaded within its retry budget."""

    kind = "retries-exhausted"

    def __init__(self, rejected: List[str], retries: int) -> None:
        """Initialize RetriesExhaustedError.

        Args:
            rejected (List[str]): Paths of the slices that were still rejected.
            retries (int): The number of retry rounds spent on the batch.

        """
        self.rejected = rejected
        self.retries = retries
        super().__init__(
            "Exceeded maximum number of retries per batch upload "
            f"({retries} retry rounds). Unresolved slices: {', '.join(rejected)}"
        )


class ManifestWriteFailedError(SlicedUploadError):
    """The manifest object could not be written."""

    kind = "manifest-write-failed"

    def __init__(self, key: str, detail: Optional[str] = None) -> None:
        """Initialize ManifestWriteFailedError."""
        self.key = key
        super().__init__(f"Failed to write manifest '{key}': {detail}")


class TransferError(SlicedUploadError):
    """Object transfer failed."""

    kind = "transfer-failed"

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize TransferError."""
        super().__init__(f"Transfer failed: {detail}")


class MultipartUploadError(TransferError):
    """Multipart upload was rejected. Carries the state to resume it."""

    def __init__(self, state: UploadState, reason: BaseException) -> None:
        """Initialize MultipartUploadError."""
        self.state = state
        self.reason = reason
        super().__init__(f"Multipart upload of '{state.key}' failed: {reason!r}")


class MaxRetriesExceededError(SlicedUploadError):
    """Max retries exceeded."""

    kind = "max-retries-exceeded"

    def __init__(self, exc: Optional[Exception] = None) -> None:
        """Initialize MaxRetriesExceededError."""
        super().__init__(f"Max retries limit exceeded due to an error: {str(exc)}")


class APIError(SlicedUploadError):
    """Storage API error."""

    kind = "api-error"

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize APIError."""
        super().__init__(f"API error: {detail}")


class AuthTokenNotFoundError(SlicedUploadError):
    """Storage API token is not found."""

    kind = "auth-token-not-found"

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize AuthTokenNotFoundError."""
        super().__init__(f"Storage API token is not found: {detail}")


class InvalidConfigError(SlicedUploadError):
    """Invalid configuration provided."""

    kind = "invalid-config"

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize InvalidConfigError."""
        super().__init__(f"Invalid configuration provided: {detail}")


class CompressionError(SlicedUploadError):
    """Failed to gzip a file."""

    kind = "compression-failed"

    def __init__(self, path: str, detail: Optional[str] = None) -> None:
        """Initialize CompressionError."""
        super().__init__(f"Failed to gzip file '{path}': {detail}")
