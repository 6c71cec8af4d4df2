# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Decorator utils."""

from __future__ import annotations

import functools
from typing import Any, Callable

from slicedupload.errors import RetriesExhaustedError, SlicedUploadError
from slicedupload.utils.format import secho_error_and_exit


def check_upload(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn upload errors into a CLI error exit."""

    @functools.wraps(func)
    def inner(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except RetriesExhaustedError as exc:
            secho_error_and_exit(
                f"[{exc.kind}] Upload failed after {exc.retries} retry rounds. "
                f"Unresolved slices:\n" + "\n".join(exc.rejected)
            )
        except SlicedUploadError as exc:
            secho_error_and_exit(f"[{exc.kind}] {exc}")

    return inner
