# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

from slicedupload.schema.resource.v1.transfer import PreparedFile, Slice
from tests.unit_tests.helpers.transport import (
    FAKE_BUCKET,
    FAKE_KEY_PREFIX,
    FakeTransport,
)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    def _make_file(name: str, size: int = 0, content: Optional[bytes] = None) -> Path:
        path = tmp_path / name
        with open(path, "wb") as f:
            if content is not None:
                f.write(content)
            else:
                f.truncate(size)
        return path

    return _make_file


@pytest.fixture
def make_slice(make_file: Callable[..., Path]) -> Callable[..., Slice]:
    def _make_slice(
        name: str, size: int = 0, content: Optional[bytes] = None
    ) -> Slice:
        path = make_file(name, size=size, content=content)
        return Slice(
            path=str(path),
            size=path.stat().st_size,
            key=FAKE_KEY_PREFIX + name,
        )

    return _make_slice


@pytest.fixture
def prepared_file_json() -> Dict[str, object]:
    return {
        "id": 456,
        "name": "slices.csv",
        "region": "us-east-1",
        "isSliced": True,
        "uploadParams": {
            "bucket": FAKE_BUCKET,
            "key": FAKE_KEY_PREFIX,
            "acl": "private",
            "x-amz-server-side-encryption": "AES256",
            "credentials": {
                "AccessKeyId": "fake_access_key_id",
                "SecretAccessKey": "fake_secret_access_key",
                "SessionToken": "fake_session_token",
                "Expiration": "2024-01-01T12:00:00+0000",
            },
        },
    }


@pytest.fixture
def prepared_file(prepared_file_json: Dict[str, object]) -> PreparedFile:
    return PreparedFile.model_validate(prepared_file_json)
