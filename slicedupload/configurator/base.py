# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload Configurator."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import Any, Dict, Union

from jsonschema import Draft7Validator, ValidationError
from typing_extensions import TypeAlias

from slicedupload.errors import InvalidConfigError

IO: TypeAlias = Union[io.TextIOWrapper, io.FileIO, io.BytesIO, io.StringIO]


class Configurator(ABC):
    """Configuration loaded from a file and checked against a JSON schema."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize configurator."""
        self._config = config

    @property
    @abstractmethod
    def validation_schema(self) -> dict:
        """Get a JSON schema for validation."""

    @classmethod
    @abstractmethod
    def from_file(cls, f: IO) -> Configurator:
        """Create a new object from the configuration file."""

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            InvalidConfigError: The configuration does not match the schema.

        """
        try:
            Draft7Validator(self.validation_schema).validate(self._config)
        except ValidationError as exc:
            location = ".".join(str(p) for p in exc.absolute_path) or "<root>"
            raise InvalidConfigError(f"{location}: {exc.message}") from exc
