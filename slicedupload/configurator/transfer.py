# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Transfer Configurator."""

from __future__ import annotations

from typing import Any, Dict

import yaml

from slicedupload.configurator.base import IO, Configurator
from slicedupload.errors import InvalidConfigError
from slicedupload.schema.resource.v1.options import TransferOptions


class TransferConfigurator(Configurator):
    """Configurator of the transfer engine.

    Example YAML file:

    ```yaml
    batch_size: 50
    max_retries_per_batch: 10
    part_max_retries: 5
    aws_retries: 10
    multipart_threshold: 8388608
    ```
    """

    @property
    def validation_schema(self) -> dict:
        """Get the JSON schema of the transfer config."""
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "properties": {
                "batch_size": {"type": "integer", "minimum": 1},
                "max_retries_per_batch": {"type": "integer", "minimum": 0},
                "part_max_retries": {"type": "integer", "minimum": 1},
                "aws_retries": {"type": "integer", "minimum": 0},
                "multipart_threshold": {"type": "integer", "minimum": 0},
                "show_progress": {"type": "boolean"},
            },
            "additionalProperties": False,
        }

    @classmethod
    def from_file(cls, f: IO) -> TransferConfigurator:
        """Load the config from a YAML file."""
        try:
            config: Dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise InvalidConfigError(
                f"The transfer config file has invalid format: {str(exc)}"
            ) from exc
        if not isinstance(config, dict):
            raise InvalidConfigError("The transfer config must be a mapping.")
        return cls(config)

    def render(self, **overrides: Any) -> TransferOptions:
        """Validate the config and build transfer options.

        Keyword arguments that are not None take precedence over the file.
        """
        self.validate()
        config = {
            **self._config,
            **{k: v for k, v in overrides.items() if v is not None},
        }
        return TransferOptions.model_validate(config)
