"""Commit and conflict records."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scene_vc.models.scene import SceneDocument


class Author(BaseModel):
    """Provenance of a commit. Not used for access control."""

    name: str
    initials: str
    avatar: Optional[str] = None


class ChangeSummary(BaseModel):
    added: int = Field(default=0, ge=0)
    modified: int = Field(default=0, ge=0)
    deleted: int = Field(default=0, ge=0)
    details: List[str] = Field(default_factory=list)


class ConflictType(str, Enum):
    """Category of disagreement between two versions of an object."""

    POSITION = "position"
    STYLE = "style"
    CONTENT = "content"
    DELETED = "deleted"


class ResolutionChoice(str, Enum):
    KEEP_A = "keep_a"
    KEEP_B = "keep_b"
    MANUAL = "manual"


class ConflictResolution(BaseModel):
    """How one conflicting object was settled during a merge.

    ``value`` holds the replacement properties for a manual resolution.
    """

    model_config = ConfigDict(populate_by_name=True)

    object_id: str = Field(alias="objectId")
    conflict_type: Optional[ConflictType] = Field(default=None, alias="conflictType")
    resolution: ResolutionChoice
    resolved_by: str = Field(default="", alias="resolvedBy")
    value: Optional[Dict[str, Any]] = None


class ConflictSide(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: Any = None
    commit_id: str = Field(alias="commitId")


class MergeConflict(BaseModel):
    """A discrepancy between two snapshots' versions of the same object."""

    model_config = ConfigDict(populate_by_name=True)

    object_id: str = Field(alias="objectId")
    object_type: str = Field(alias="objectType")
    conflict_type: ConflictType = Field(alias="conflictType")
    branch_a: ConflictSide = Field(alias="branchA")
    branch_b: ConflictSide = Field(alias="branchB")


class Commit(BaseModel):
    """Immutable, self-contained snapshot of the scene plus ancestry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    parent_ids: List[str] = Field(default_factory=list, alias="parentIds")
    timestamp: int
    author: Author
    message: str
    tags: List[str] = Field(default_factory=list)
    snapshot: SceneDocument
    thumbnail: str = ""
    change_summary: ChangeSummary = Field(
        default_factory=ChangeSummary, alias="changeSummary"
    )
    conflict_resolutions: Optional[List[ConflictResolution]] = Field(
        default=None, alias="conflictResolutions"
    )

    @field_validator("parent_ids")
    @classmethod
    def _check_parents(cls, value: List[str]) -> List[str]:
        if len(value) > 2:
            raise ValueError("a commit has at most two parents")
        if len(set(value)) != len(value):
            raise ValueError("parent ids must be distinct")
        return value

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) == 2

    @property
    def short_id(self) -> str:
        return self.id[-8:]

    def to_record(self) -> Dict[str, Any]:
        """Portable JSON-compatible form used by the stores."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
