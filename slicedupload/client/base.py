# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload HTTP Client Base."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict
from urllib.parse import urljoin

import requests
from requests import HTTPError
from requests.models import Response
from urllib3.exceptions import ConnectTimeoutError, ReadTimeoutError

from slicedupload.errors import APIError, MaxRetriesExceededError
from slicedupload.logging import logger
from slicedupload.utils.request import DEFAULT_REQ_TIMEOUT, MAX_RETRIES, decode_http_err

RETRYABLE_REQUEST_ERRORS = (
    ConnectionError,
    requests.exceptions.ReadTimeout,
    requests.exceptions.ConnectionError,
    ReadTimeoutError,
    ConnectTimeoutError,
)


class RequestInterface:
    """Request API mixin."""

    max_retries: int = MAX_RETRIES

    def check_request(self, func: Callable[..., Response]) -> Callable[..., Response]:
        """Wrapper function to send requests with the retry and error handling."""

        @wraps(func)
        def wrapper(*args, **kwargs) -> Response:
            final_exc = None
            for i in range(self.max_retries):
                try:
                    resp = func(*args, **kwargs)
                except RETRYABLE_REQUEST_ERRORS as exc:
                    logger.info(
                        "Retry the failed request (attempt %s / %s).",
                        i + 1,
                        self.max_retries,
                    )
                    final_exc = exc
                    continue

                try:
                    resp.raise_for_status()
                except HTTPError as exc:
                    raise APIError(decode_http_err(exc)) from exc
                return resp
            raise MaxRetriesExceededError(final_exc)

        return wrapper


class HttpClient(RequestInterface):
    """Base interface of HTTP clients."""

    def __init__(self, base_url: str) -> None:
        """Initialize HttpClient."""
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"

    @property
    def default_request_options(self) -> Dict[str, Any]:
        """Common request options."""
        return {"timeout": DEFAULT_REQ_TIMEOUT}

    def url(self, path: str) -> str:
        """Get an absolute URL of the API path."""
        return urljoin(self.base_url, path)

    def post(self, path: str, **kwargs) -> Response:
        """Send a POST request."""
        return self.check_request(requests.post)(
            self.url(path), **self.default_request_options, **kwargs
        )
