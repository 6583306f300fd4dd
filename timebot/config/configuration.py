"""
Role Configuration — The durable, human-editable record.

Stored as JSON. Role ids and member ids are written as strings so the file
survives tools that mangle large integers.

    {
      "start_hour": 9,
      "end_hour": 17,
      "parent_role_id": "123",
      "child_role_id": "456",
      "member_timezones": {"789": "Europe/Berlin"}
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer

from timebot.errors import ConfigLoadError, PersistenceFailure

logger = logging.getLogger("timebot.config")

PathLike = Union[str, os.PathLike]


class Configuration(BaseModel):
    """Active window, role pair and member timezones.

    Instances are frozen. ConfigStore replaces the whole object on write, so
    a reader holding one never sees it change underneath.
    """

    model_config = ConfigDict(frozen=True)

    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=0, le=23)
    parent_role_id: int
    child_role_id: int
    member_timezones: Dict[int, str] = Field(default_factory=dict)

    @field_serializer("parent_role_id", "child_role_id")
    def _serialize_role_id(self, value: int) -> str:
        return str(value)

    @field_serializer("member_timezones")
    def _serialize_member_timezones(self, value: Dict[int, str]) -> Dict[str, str]:
        return {str(user_id): tz_name for user_id, tz_name in value.items()}

    def with_timezone(self, user_id: int, tz_name: str) -> "Configuration":
        """Return a copy with ``user_id`` mapped to ``tz_name``."""
        timezones = dict(self.member_timezones)
        timezones[user_id] = tz_name
        return self.model_copy(update={"member_timezones": timezones})


def load_configuration(path: PathLike) -> Configuration:
    """Read and validate the configuration file.

    Raises ConfigLoadError on any read or parse problem; the process cannot
    start without a configuration.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Failed to read the `%s`-File: %s", path, e)
        raise ConfigLoadError(path, e) from e

    try:
        return Configuration.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Failed to deserialize the configuration: %s", e)
        raise ConfigLoadError(path, e) from e


def save_configuration(path: PathLike, configuration: Configuration) -> None:
    """Overwrite the configuration file with ``configuration``.

    The whole file is rewritten into a sibling temp file which then replaces
    ``path``, so a failed save leaves the previous file intact. Raises
    PersistenceFailure.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    payload = json.dumps(configuration.model_dump(mode="json"), indent=2, sort_keys=True)
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload + "\n")
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise PersistenceFailure(path, e) from e
