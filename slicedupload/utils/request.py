# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload API Request Utilities."""

from __future__ import annotations

from requests.exceptions import HTTPError

DEFAULT_REQ_TIMEOUT = 600.0
MAX_RETRIES = 3


def decode_http_err(exc: HTTPError) -> str:
    """Decode HTTP error."""
    response = exc.response
    try:
        detail_json = response.json()
        if "error" in detail_json:
            error_str = (
                f"Error Code: {response.status_code}\nDetail: {detail_json['error']}"
            )
        elif "detail" in detail_json:
            error_str = (
                f"Error Code: {response.status_code}\nDetail: {detail_json['detail']}"
            )
        else:
            error_str = f"Error Code: {response.status_code}"
    except ValueError:
        error_str = f"Error Code: {response.status_code}\nDetail: {response.text}"

    return error_str
