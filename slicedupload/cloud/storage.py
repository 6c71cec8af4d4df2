# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload Object Store Transport."""

# pylint: disable=too-many-arguments

from __future__ import annotations

import math
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Protocol, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_s3.client import S3Client
from tqdm import tqdm

from slicedupload.errors import (
    FileNotReadableError,
    MaxRetriesExceededError,
    MultipartUploadError,
    TransferError,
)
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.options import TransferOptions
from slicedupload.schema.resource.v1.transfer import (
    PreparedFile,
    UploadedPartETag,
    UploadState,
)
from slicedupload.utils.fs import get_file_size
from slicedupload.utils.transfer import (
    AWS_RETRIES,
    KiB,
    MULTI_FILE_CONCURRENCY,
    PART_MAX_RETRIES,
    S3_MULTIPART_CHUNK_SIZE,
    S3_RETRYABLE_UPLOAD_ERRORS,
    ChunksizeAdjuster,
    PartReader,
)

Body = Union[bytes, IO[bytes]]


class ObjectStoreTransport(Protocol):
    """Object store operations needed to upload a sliced file."""

    def put_object(
        self,
        *,
        bucket: str,
        key: str,
        body: Body,
        acl: Optional[str] = None,
        content_disposition: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
    ) -> None:
        """Upload an object in a single request. Raises `TransferError` on failure."""

    def multipart_upload(
        self,
        *,
        bucket: str,
        key: str,
        file_path: str,
        acl: Optional[str] = None,
        concurrency: int = MULTI_FILE_CONCURRENCY,
        content_disposition: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
        state: Optional[UploadState] = None,
    ) -> None:
        """Upload a file in multiple parts.

        Raises `MultipartUploadError` carrying the state to resume from when any part
        fails.
        """


class S3Transport:
    """AWS S3 transport."""

    def __init__(
        self,
        client: S3Client,
        chunk_adjuster: Optional[ChunksizeAdjuster] = None,
        part_size: int = S3_MULTIPART_CHUNK_SIZE,
        part_max_retries: int = PART_MAX_RETRIES,
        show_progress: bool = False,
    ) -> None:
        """Initialize S3Transport."""
        self.client = client
        self._adjuster = chunk_adjuster or ChunksizeAdjuster()
        self._part_size = part_size
        self._part_max_retries = part_max_retries
        self._show_progress = show_progress

    def put_object(
        self,
        *,
        bucket: str,
        key: str,
        body: Body,
        acl: Optional[str] = None,
        content_disposition: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
    ) -> None:
        """Upload an object with a single ``PutObject`` request."""
        params: Dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": body}
        params.update(
            self._object_params(acl, content_disposition, server_side_encryption)
        )
        try:
            self.client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            raise TransferError(f"PutObject of '{key}' failed: {exc!r}") from exc

    def multipart_upload(
        self,
        *,
        bucket: str,
        key: str,
        file_path: str,
        acl: Optional[str] = None,
        concurrency: int = MULTI_FILE_CONCURRENCY,
        content_disposition: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
        state: Optional[UploadState] = None,
    ) -> None:
        """Upload a file in parts, sending only the parts missing from `state`."""
        try:
            file_size = get_file_size(file_path)
        except OSError as exc:
            raise FileNotReadableError(file_path) from exc

        if state is None:
            part_size = self._adjuster.adjust_chunksize(
                current_chunksize=self._part_size, file_size=file_size
            )
            state = UploadState(bucket=bucket, key=key, part_size=part_size)

        upload_id = state.upload_id
        if upload_id is None:
            try:
                upload_id = self._initiate(
                    bucket, key, acl, content_disposition, server_side_encryption
                )
            except (BotoCoreError, ClientError) as exc:
                raise MultipartUploadError(state, exc) from exc

        uploaded = {part.part_number: part.etag for part in state.parts}
        num_parts = max(1, math.ceil(file_size / state.part_size))
        outstanding = [n for n in range(1, num_parts + 1) if n not in uploaded]
        failures: List[BaseException] = []

        with tqdm(
            desc=Path(file_path).name,
            total=file_size,
            initial=sum(
                self._part_length(n, state.part_size, file_size) for n in uploaded
            ),
            unit="B",
            unit_scale=True,
            unit_divisor=KiB,
            disable=not self._show_progress,
        ) as pbar:
            with ThreadPoolExecutor(max_workers=concurrency) as executor:
                futs = {
                    executor.submit(
                        self._upload_part,
                        file_path=file_path,
                        file_size=file_size,
                        bucket=bucket,
                        key=key,
                        upload_id=upload_id,
                        part_number=part_number,
                        part_size=state.part_size,
                        pbar=pbar,
                    ): part_number
                    for part_number in outstanding
                }
                wait(futs, return_when=ALL_COMPLETED)

            for fut, part_number in futs.items():
                exc = fut.exception()
                if exc is None:
                    uploaded[part_number] = fut.result()
                else:
                    failures.append(exc)

        resume_state = UploadState(
            bucket=bucket,
            key=key,
            part_size=state.part_size,
            upload_id=upload_id,
            parts=[
                UploadedPartETag(etag=etag, part_number=part_number)
                for part_number, etag in sorted(uploaded.items())
            ],
        )
        if failures:
            logger.debug(
                "%d / %d parts of '%s' failed.", len(failures), len(outstanding), key
            )
            raise MultipartUploadError(resume_state, failures[0])

        try:
            self.client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [
                        {"ETag": part.etag, "PartNumber": part.part_number}
                        for part in resume_state.parts
                    ]
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise MultipartUploadError(resume_state, exc) from exc

    def _initiate(
        self,
        bucket: str,
        key: str,
        acl: Optional[str],
        content_disposition: Optional[str],
        server_side_encryption: Optional[str],
    ) -> str:
        params: Dict[str, Any] = {"Bucket": bucket, "Key": key}
        params.update(
            self._object_params(acl, content_disposition, server_side_encryption)
        )
        resp = self.client.create_multipart_upload(**params)
        return resp["UploadId"]

    def _upload_part(
        self,
        file_path: str,
        file_size: int,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        part_size: int,
        pbar: tqdm,
    ) -> str:
        length = self._part_length(part_number, part_size, file_size)
        try:
            f = open(file_path, "rb")  # pylint: disable=consider-using-with
        except OSError as exc:
            raise FileNotReadableError(file_path) from exc

        final_exc: Optional[Exception] = None
        with f:
            body = PartReader(pbar.update, f, (part_number - 1) * part_size, length)
            for i in range(self._part_max_retries):
                body.seek(0)
                try:
                    resp = self.client.upload_part(
                        Bucket=bucket,
                        Key=key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=body,
                        ContentLength=length,
                    )
                except S3_RETRYABLE_UPLOAD_ERRORS as exc:
                    logger.debug(
                        "Error while uploading part %s of '%s'. "
                        "Retry uploading the part (attempt %s / %s).",
                        part_number,
                        key,
                        i + 1,
                        self._part_max_retries,
                    )
                    final_exc = exc
                    continue
                return resp["ETag"]

        raise MaxRetriesExceededError(final_exc)

    @staticmethod
    def _part_length(part_number: int, part_size: int, file_size: int) -> int:
        return max(0, min(part_size, file_size - (part_number - 1) * part_size))

    @staticmethod
    def _object_params(
        acl: Optional[str],
        content_disposition: Optional[str],
        server_side_encryption: Optional[str],
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if acl:
            params["ACL"] = acl
        if content_disposition:
            params["ContentDisposition"] = content_disposition
        if server_side_encryption:
            params["ServerSideEncryption"] = server_side_encryption
        return params


def build_s3_client(prepared: PreparedFile, retries: int = AWS_RETRIES) -> S3Client:
    """Build AWS S3 client from the federation credentials of a prepared file."""
    credentials = prepared.upload_params.credentials
    return boto3.client(
        "s3",
        region_name=prepared.region,
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
        config=Config(retries={"max_attempts": retries, "mode": "standard"}),
    )


def build_s3_transport(
    prepared: PreparedFile, transfer_options: TransferOptions
) -> S3Transport:
    """Build the S3 transport used to upload a prepared file."""
    return S3Transport(
        build_s3_client(prepared, retries=transfer_options.aws_retries),
        part_max_retries=transfer_options.part_max_retries,
        show_progress=transfer_options.show_progress,
    )
