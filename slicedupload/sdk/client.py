# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload SDK."""

# pylint: disable=too-many-locals

from __future__ import annotations

import os
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Callable, List, Optional, Sequence, Union

from slicedupload.client.storage import StorageApiClient
from slicedupload.cloud.storage import ObjectStoreTransport, build_s3_transport
from slicedupload.errors import FileNotReadableError, InvalidInputError
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.options import FileUploadOptions, TransferOptions
from slicedupload.schema.resource.v1.transfer import PreparedFile, Slice
from slicedupload.transfer.batch import BatchUploader
from slicedupload.transfer.dispatcher import (
    SliceDispatcher,
    check_unique_names,
    enumerate_slices,
)
from slicedupload.transfer.manifest import ManifestWriter
from slicedupload.utils.fs import (
    STAGING_DIR_PREFIX,
    get_file_size,
    gzip_file,
    is_compressed,
    is_readable,
)

TransportFactory = Callable[[PreparedFile, TransferOptions], ObjectStoreTransport]
FileId = Union[int, str]


class SlicedUploadClient:
    """Uploads files and sliced files to the storage."""

    def __init__(
        self,
        api_client: Optional[StorageApiClient] = None,
        transport_factory: TransportFactory = build_s3_transport,
    ) -> None:
        """Initialize SlicedUploadClient.

        Args:
            api_client (Optional[StorageApiClient], optional): Storage API client that
                prepares file resources. Defaults to a client configured from the
                environment.
            transport_factory (TransportFactory, optional): Builds the object store
                transport from a prepared file. Defaults to an S3 transport.

        """
        self._api_client = api_client or StorageApiClient()
        self._transport_factory = transport_factory

    def upload_sliced_file(
        self,
        slices: Sequence[Union[str, Path]],
        options: FileUploadOptions,
        transfer_options: Optional[TransferOptions] = None,
    ) -> FileId:
        """Upload a sliced file.

        Slices are uploaded batch by batch, and the manifest listing every slice is
        written once all of them succeed. Nothing is cleaned up in the storage on
        failure, so slices of failed uploads may remain there.

        Args:
            slices (Sequence[Union[str, Path]]): Paths to the slices, in order.
            options (FileUploadOptions): Options of the file resource. `is_sliced` and
                `file_name` are required.
            transfer_options (Optional[TransferOptions], optional): Options of the
                transfer engine.

        Raises:
            InvalidInputError: The options do not describe a sliced file, or two
                slices share a name.
            FileNotReadableError: A slice cannot be read.
            RetriesExhaustedError: A batch failed within its retry budget.
            ManifestWriteFailedError: The manifest could not be written.

        Returns:
            FileId: ID of the created file.

        """
        if not options.is_sliced:
            raise InvalidInputError("File is not sliced.")
        if not options.file_name:
            raise InvalidInputError("File name for sliced file upload not set.")
        transfer_options = transfer_options or TransferOptions()

        paths = [str(path) for path in slices]
        check_unique_names(paths)
        size_bytes = 0
        for path in paths:
            if not is_readable(path):
                raise FileNotReadableError(path)
            size_bytes += get_file_size(path)

        with TemporaryDirectory(prefix=STAGING_DIR_PREFIX) as staging_dir:
            if options.compress:
                paths = [self._stage(path, staging_dir) for path in paths]
                check_unique_names(paths)

            prepared = self._api_client.prepare_file_upload(
                options, size_bytes=size_bytes
            )
            params = prepared.upload_params
            encryption = params.server_side_encryption if options.is_encrypted else None
            transport = self._transport_factory(prepared, transfer_options)

            uploader = BatchUploader(
                transport,
                bucket=params.bucket,
                acl=params.acl,
                server_side_encryption=encryption,
                max_retries=transfer_options.max_retries_per_batch,
            )
            dispatcher = SliceDispatcher(
                uploader, batch_size=transfer_options.batch_size
            )
            entries = dispatcher.dispatch(enumerate_slices(paths, params.key))
            ManifestWriter(
                transport,
                bucket=params.bucket,
                key_prefix=params.key,
                server_side_encryption=encryption,
            ).write(entries)

        logger.info(
            "%d slices in %d batches are uploaded with %d retry rounds, file id %s.",
            len(paths),
            dispatcher.batches_processed,
            dispatcher.retry_rounds,
            prepared.id,
        )
        return prepared.id

    def upload_file(
        self,
        file_path: Union[str, Path],
        options: FileUploadOptions,
        transfer_options: Optional[TransferOptions] = None,
    ) -> FileId:
        """Upload a single file.

        Args:
            file_path (Union[str, Path]): Path to the file.
            options (FileUploadOptions): Options of the file resource. The file name
                is taken from the uploaded file.
            transfer_options (Optional[TransferOptions], optional): Options of the
                transfer engine.

        Raises:
            FileNotReadableError: The file cannot be read.
            RetriesExhaustedError: The transfer failed within its retry budget.

        Returns:
            FileId: ID of the created file.

        """
        path = str(file_path)
        if not is_readable(path):
            raise FileNotReadableError(path)
        transfer_options = transfer_options or TransferOptions()

        with TemporaryDirectory(prefix=STAGING_DIR_PREFIX) as staging_dir:
            if options.compress:
                path = self._stage(path, staging_dir)

            size_bytes = get_file_size(path)
            prepared = self._api_client.prepare_file_upload(
                options.model_copy(
                    update={"file_name": os.path.basename(path), "is_sliced": False}
                ),
                size_bytes=size_bytes,
            )
            params = prepared.upload_params
            transport = self._transport_factory(prepared, transfer_options)

            uploader = BatchUploader(
                transport,
                bucket=params.bucket,
                acl=params.acl,
                file_name=prepared.name,
                server_side_encryption=(
                    params.server_side_encryption if options.is_encrypted else None
                ),
                max_retries=transfer_options.max_retries_per_batch,
                multipart_threshold=transfer_options.multipart_threshold,
            )
            uploader.upload([Slice(path=path, size=size_bytes, key=params.key)])

        logger.info("File '%s' is uploaded, file id %s.", path, prepared.id)
        return prepared.id

    @staticmethod
    def _stage(path: str, staging_dir: str) -> str:
        if is_compressed(path):
            return path
        logger.debug("Compressing '%s'...", path)
        return str(gzip_file(path, staging_dir))

    @staticmethod
    def list_slices(directory: Union[str, Path]) -> List[str]:
        """List the files of a directory sorted by name."""
        return sorted(str(p) for p in Path(directory).iterdir() if p.is_file())
