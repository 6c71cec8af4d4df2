# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Test S3Transport."""

from __future__ import annotations

import threading
from typing import Any, Dict, List
from unittest.mock import Mock

import pytest
from botocore.client import BaseClient
from botocore.exceptions import ClientError

from slicedupload.cloud.storage import S3Transport, build_s3_client
from slicedupload.errors import (
    FileNotReadableError,
    MaxRetriesExceededError,
    MultipartUploadError,
    TransferError,
)
from slicedupload.schema.resource.v1.transfer import UploadState
from slicedupload.utils.transfer import ChunksizeAdjuster, PartReader

from tests.unit_tests.helpers.transport import FAKE_BUCKET, FAKE_KEY_PREFIX

KEY = FAKE_KEY_PREFIX + "part_0.csv"


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, operation)


class PartRecorder:
    """Records the parts sent by `upload_part` and fails chosen ones once."""

    def __init__(self, fail_once: List[int]) -> None:
        self.fail_once = set(fail_once)
        self.sent: Dict[int, bytes] = {}
        self.calls: List[int] = []
        self.bodies: List[Any] = []
        self.content_lengths: Dict[int, int] = {}
        self._lock = threading.Lock()

    def __call__(self, **kwargs):
        part_number = kwargs["PartNumber"]
        with self._lock:
            self.calls.append(part_number)
            if part_number in self.fail_once:
                self.fail_once.remove(part_number)
                raise client_error("UploadPart")
            self.bodies.append(kwargs["Body"])
            self.content_lengths[part_number] = kwargs["ContentLength"]
            self.sent[part_number] = kwargs["Body"].read()
        return {"ETag": f"etag-{part_number}"}


@pytest.fixture
def s3_client_mock():
    client = Mock(BaseClient)()
    client.create_multipart_upload = Mock(return_value={"UploadId": "upload-id"})
    client.complete_multipart_upload = Mock()
    client.put_object = Mock()
    client.upload_part = Mock()
    return client


@pytest.fixture
def transport(s3_client_mock) -> S3Transport:
    return S3Transport(
        s3_client_mock,
        chunk_adjuster=ChunksizeAdjuster(min_size=1),
        part_size=4,
        part_max_retries=1,
    )


def test_put_object(s3_client_mock, transport: S3Transport):
    transport.put_object(
        bucket=FAKE_BUCKET,
        key=KEY,
        body=b"",
        acl="private",
        content_disposition="attachment; filename=part_0.csv;",
        server_side_encryption="AES256",
    )

    s3_client_mock.put_object.assert_called_once_with(
        Bucket=FAKE_BUCKET,
        Key=KEY,
        Body=b"",
        ACL="private",
        ContentDisposition="attachment; filename=part_0.csv;",
        ServerSideEncryption="AES256",
    )


def test_put_object_failure(s3_client_mock, transport: S3Transport):
    s3_client_mock.put_object.side_effect = client_error("PutObject")

    with pytest.raises(TransferError):
        transport.put_object(bucket=FAKE_BUCKET, key=KEY, body=b"")


def test_multipart_upload(make_file, s3_client_mock, transport: S3Transport):
    path = make_file("part_0.csv", content=b"0123456789")
    recorder = PartRecorder(fail_once=[])
    s3_client_mock.upload_part.side_effect = recorder

    transport.multipart_upload(
        bucket=FAKE_BUCKET,
        key=KEY,
        file_path=str(path),
        acl="private",
        concurrency=2,
        server_side_encryption="AES256",
    )

    s3_client_mock.create_multipart_upload.assert_called_once_with(
        Bucket=FAKE_BUCKET, Key=KEY, ACL="private", ServerSideEncryption="AES256"
    )
    assert recorder.sent == {1: b"0123", 2: b"4567", 3: b"89"}
    s3_client_mock.complete_multipart_upload.assert_called_once_with(
        Bucket=FAKE_BUCKET,
        Key=KEY,
        UploadId="upload-id",
        MultipartUpload={
            "Parts": [
                {"ETag": "etag-1", "PartNumber": 1},
                {"ETag": "etag-2", "PartNumber": 2},
                {"ETag": "etag-3", "PartNumber": 3},
            ]
        },
    )


def test_multipart_upload_resumes_only_missing_parts(
    make_file, s3_client_mock, transport: S3Transport
):
    path = make_file("part_0.csv", content=b"0123456789")
    recorder = PartRecorder(fail_once=[2])
    s3_client_mock.upload_part.side_effect = recorder

    with pytest.raises(MultipartUploadError) as exc_info:
        transport.multipart_upload(bucket=FAKE_BUCKET, key=KEY, file_path=str(path))

    state = exc_info.value.state
    assert isinstance(exc_info.value.reason, MaxRetriesExceededError)
    assert state.upload_id == "upload-id"
    assert state.part_size == 4
    assert [p.part_number for p in state.parts] == [1, 3]
    s3_client_mock.complete_multipart_upload.assert_not_called()

    recorder.calls.clear()
    transport.multipart_upload(
        bucket=FAKE_BUCKET, key=KEY, file_path=str(path), state=state
    )

    assert recorder.calls == [2]
    assert sum(len(body) for body in recorder.sent.values()) == 10
    s3_client_mock.create_multipart_upload.assert_called_once()
    parts = s3_client_mock.complete_multipart_upload.call_args.kwargs[
        "MultipartUpload"
    ]["Parts"]
    assert [p["PartNumber"] for p in parts] == [1, 2, 3]


def test_multipart_upload_initiation_failure(
    make_file, s3_client_mock, transport: S3Transport
):
    path = make_file("part_0.csv", content=b"0123456789")
    s3_client_mock.create_multipart_upload.side_effect = client_error(
        "CreateMultipartUpload"
    )

    with pytest.raises(MultipartUploadError) as exc_info:
        transport.multipart_upload(bucket=FAKE_BUCKET, key=KEY, file_path=str(path))

    assert exc_info.value.state.upload_id is None
    assert exc_info.value.state.parts == []
    s3_client_mock.upload_part.assert_not_called()


def test_multipart_upload_part_retry(make_file, s3_client_mock):
    path = make_file("part_0.csv", content=b"0123")
    recorder = PartRecorder(fail_once=[1])
    s3_client_mock.upload_part.side_effect = recorder
    transport = S3Transport(
        s3_client_mock,
        chunk_adjuster=ChunksizeAdjuster(min_size=1),
        part_size=4,
        part_max_retries=2,
    )

    transport.multipart_upload(bucket=FAKE_BUCKET, key=KEY, file_path=str(path))

    assert recorder.calls == [1, 1]
    s3_client_mock.complete_multipart_upload.assert_called_once()


def test_multipart_upload_missing_file(tmp_path, transport: S3Transport):
    with pytest.raises(FileNotReadableError):
        transport.multipart_upload(
            bucket=FAKE_BUCKET, key=KEY, file_path=str(tmp_path / "missing.csv")
        )


def test_multipart_upload_keeps_part_size_of_state(
    make_file, s3_client_mock, transport: S3Transport
):
    path = make_file("part_0.csv", content=b"0123456789")
    recorder = PartRecorder(fail_once=[])
    s3_client_mock.upload_part.side_effect = recorder
    state = UploadState(bucket=FAKE_BUCKET, key=KEY, part_size=5)

    transport.multipart_upload(
        bucket=FAKE_BUCKET, key=KEY, file_path=str(path), state=state
    )

    assert recorder.sent == {1: b"01234", 2: b"56789"}


def test_build_s3_client(prepared_file):
    client = build_s3_client(prepared_file, retries=3)

    assert isinstance(client, BaseClient)
    assert client.meta.region_name == "us-east-1"


def test_multipart_upload_streams_parts(
    make_file, s3_client_mock, transport: S3Transport
):
    path = make_file("part_0.csv", content=b"0123456789")
    recorder = PartRecorder(fail_once=[])
    s3_client_mock.upload_part.side_effect = recorder

    transport.multipart_upload(
        bucket=FAKE_BUCKET, key=KEY, file_path=str(path), concurrency=3
    )

    assert len(recorder.bodies) == 3
    for body in recorder.bodies:
        assert not isinstance(body, (bytes, bytearray))
        assert isinstance(body, PartReader)
    assert recorder.content_lengths == {1: 4, 2: 4, 3: 2}
    assert recorder.sent == {1: b"0123", 2: b"4567", 3: b"89"}
    assert all(body.closed for body in recorder.bodies)
