"""Repository configuration stored in ``.scene-vc/config.json``."""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Literal

import pydantic
from pydantic import BaseModel, Field

from scene_vc import __version__
from scene_vc.errors import SerializationError, StoreError
from scene_vc.models.commit import Author

CONFIG_FILE_NAME = "config.json"


class ThumbnailSettings(BaseModel):
    width: int = Field(default=200, gt=0)
    height: int = Field(default=150, gt=0)
    background: str = "#ffffff"


class RepositoryConfig(BaseModel):
    """Settings for one scene repository."""

    version: str = __version__
    created: str = Field(default_factory=lambda: datetime.now().isoformat())
    author: Author = Field(
        default_factory=lambda: Author(name="Designer", initials="D")
    )
    store: Literal["json", "git"] = "git"
    thumbnail: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    scene_file: str = "scene.json"
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Path) -> "RepositoryConfig":
        """Read the config file, falling back to defaults when it is absent."""
        if path.exists():
            try:
                config = cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
            except (json.JSONDecodeError, pydantic.ValidationError) as e:
                raise SerializationError(f"Invalid config file {path}: {e}") from e
        else:
            config = cls()
        return config.with_env_overrides()

    def with_env_overrides(self) -> "RepositoryConfig":
        """Apply SCENE_VC_* environment variables on top of the file values."""
        author = self.author.model_copy(
            update={
                key: value
                for key, value in (
                    ("name", os.environ.get("SCENE_VC_AUTHOR_NAME")),
                    ("initials", os.environ.get("SCENE_VC_AUTHOR_INITIALS")),
                )
                if value
            }
        )
        log_level = os.environ.get("SCENE_VC_LOG_LEVEL") or self.log_level
        return self.model_copy(update={"author": author, "log_level": log_level.upper()})

    def save(self, path: Path) -> None:
        try:
            path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise StoreError("Could not write config", str(path)) from e
