"""Data models for scene-vc."""

from .branch import DEFAULT_BRANCH_ID, Branch
from .commit import (
    Author,
    ChangeSummary,
    Commit,
    ConflictResolution,
    ConflictSide,
    ConflictType,
    MergeConflict,
    ResolutionChoice,
)
from .scene import (
    EllipseObject,
    GenericObject,
    ImageObject,
    RectObject,
    SceneDocument,
    SceneObjectBase,
    TextObject,
)

__all__ = [
    "Author",
    "Branch",
    "ChangeSummary",
    "Commit",
    "ConflictResolution",
    "ConflictSide",
    "ConflictType",
    "DEFAULT_BRANCH_ID",
    "EllipseObject",
    "GenericObject",
    "ImageObject",
    "MergeConflict",
    "RectObject",
    "ResolutionChoice",
    "SceneDocument",
    "SceneObjectBase",
    "TextObject",
]
