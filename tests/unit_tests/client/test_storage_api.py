# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Test StorageApiClient."""

from __future__ import annotations

from typing import Any, Dict
from urllib.parse import parse_qs

import pytest
import requests
import requests_mock

import slicedupload
from slicedupload.client.storage import TOKEN_HEADER, StorageApiClient
from slicedupload.errors import (
    APIError,
    AuthTokenNotFoundError,
    MaxRetriesExceededError,
)
from slicedupload.schema.resource.v1.options import FileUploadOptions

BASE_URL = "https://connection.test.keboola.com/"
PREPARE_URL = f"{BASE_URL}v2/storage/files/prepare"


@pytest.fixture
def storage_api_client() -> StorageApiClient:
    return StorageApiClient(url=BASE_URL, token="fake-token")


def test_prepare_file_upload(
    requests_mock: requests_mock.Mocker,
    storage_api_client: StorageApiClient,
    prepared_file_json: Dict[str, Any],
):
    requests_mock.post(PREPARE_URL, json=prepared_file_json)
    options = FileUploadOptions(
        file_name="slices.csv", is_sliced=True, is_encrypted=True, tags=["a", "b"]
    )

    prepared = storage_api_client.prepare_file_upload(options, size_bytes=15)

    assert prepared.id == 456
    assert prepared.name == "slices.csv"
    assert prepared.region == "us-east-1"
    assert prepared.upload_params.server_side_encryption == "AES256"
    assert prepared.upload_params.credentials.session_token == "fake_session_token"

    request = requests_mock.last_request
    assert request.headers[TOKEN_HEADER] == "fake-token"
    form = parse_qs(request.text)
    assert form["name"] == ["slices.csv"]
    assert form["sizeBytes"] == ["15"]
    assert form["isSliced"] == ["1"]
    assert form["isEncrypted"] == ["1"]
    assert form["isPublic"] == ["0"]
    assert form["federationToken"] == ["1"]
    assert form["tags[]"] == ["a", "b"]


def test_prepare_file_upload_http_error(
    requests_mock: requests_mock.Mocker, storage_api_client: StorageApiClient
):
    requests_mock.post(
        PREPARE_URL, status_code=401, json={"error": "Invalid access token"}
    )

    with pytest.raises(APIError) as exc_info:
        storage_api_client.prepare_file_upload(
            FileUploadOptions(file_name="a.csv"), size_bytes=0
        )

    assert "Invalid access token" in str(exc_info.value)


def test_prepare_file_upload_connection_error(
    requests_mock: requests_mock.Mocker, storage_api_client: StorageApiClient
):
    requests_mock.post(PREPARE_URL, exc=requests.exceptions.ConnectionError)

    with pytest.raises(MaxRetriesExceededError):
        storage_api_client.prepare_file_upload(
            FileUploadOptions(file_name="a.csv"), size_bytes=0
        )

    assert requests_mock.call_count == storage_api_client.max_retries


def test_token_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(slicedupload, "token", "env-token")
    monkeypatch.setattr(slicedupload, "url", BASE_URL)

    client = StorageApiClient()

    assert client.default_request_options["headers"] == {TOKEN_HEADER: "env-token"}
    assert client.url("v2/storage/files/prepare") == PREPARE_URL


def test_missing_token(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(slicedupload, "token", None)

    with pytest.raises(AuthTokenNotFoundError):
        StorageApiClient(url=BASE_URL)
