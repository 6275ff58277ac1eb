"""Structural comparison of two scene snapshots."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from scene_vc.core.codec import parse_document
from scene_vc.models.commit import (
    ChangeSummary,
    ConflictSide,
    ConflictType,
    MergeConflict,
)
from scene_vc.models.scene import SceneDocument, SceneObjectBase, TextObject

Snapshot = Union[SceneDocument, Dict[str, Any]]


class SnapshotDiff(BaseModel):
    """Object ids that differ between an old and a new snapshot."""

    added: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.modified)


def _conflict(
    obj: SceneObjectBase,
    conflict_type: ConflictType,
    value_a: Any,
    value_b: Any,
    commit_a_id: str,
    commit_b_id: str,
) -> MergeConflict:
    return MergeConflict(
        object_id=obj.object_id,
        object_type=obj.type,
        conflict_type=conflict_type,
        branch_a=ConflictSide(value=value_a, commit_id=commit_a_id),
        branch_b=ConflictSide(value=value_b, commit_id=commit_b_id),
    )


def detect_object_conflicts(
    obj_a: SceneObjectBase,
    obj_b: SceneObjectBase,
    commit_a_id: str = "",
    commit_b_id: str = "",
) -> List[MergeConflict]:
    """Compare one object's two versions by category.

    Values are compared with plain equality, no tolerance.
    """
    conflicts = []

    if obj_a.left != obj_b.left or obj_a.top != obj_b.top:
        conflicts.append(
            _conflict(
                obj_a,
                ConflictType.POSITION,
                obj_a.position_value(),
                obj_b.position_value(),
                commit_a_id,
                commit_b_id,
            )
        )

    if obj_a.fill != obj_b.fill or obj_a.stroke != obj_b.stroke:
        conflicts.append(
            _conflict(
                obj_a,
                ConflictType.STYLE,
                obj_a.style_value(),
                obj_b.style_value(),
                commit_a_id,
                commit_b_id,
            )
        )

    if isinstance(obj_a, TextObject):
        text_b = getattr(obj_b, "text", None)
        if obj_a.text != text_b:
            conflicts.append(
                _conflict(
                    obj_a,
                    ConflictType.CONTENT,
                    obj_a.text,
                    text_b,
                    commit_a_id,
                    commit_b_id,
                )
            )

    return conflicts


def detect_conflicts(
    snapshot_a: Snapshot,
    snapshot_b: Snapshot,
    commit_a_id: str = "",
    commit_b_id: str = "",
) -> List[MergeConflict]:
    """List per-object conflicts between two snapshots.

    Results follow snapshot A's object order. An object present in only
    one snapshot yields a ``deleted`` conflict with ``None`` on the side
    that lacks it; objects only in B come last, in B's order.
    """
    objects_a = parse_document(snapshot_a).index()
    objects_b = parse_document(snapshot_b).index()
    conflicts: List[MergeConflict] = []

    for object_id, obj_a in objects_a.items():
        obj_b = objects_b.get(object_id)
        if obj_b is None:
            conflicts.append(
                _conflict(
                    obj_a, ConflictType.DELETED, obj_a.to_dict(), None, commit_a_id, commit_b_id
                )
            )
        else:
            conflicts.extend(detect_object_conflicts(obj_a, obj_b, commit_a_id, commit_b_id))

    for object_id, obj_b in objects_b.items():
        if object_id not in objects_a:
            conflicts.append(
                _conflict(
                    obj_b, ConflictType.DELETED, None, obj_b.to_dict(), commit_a_id, commit_b_id
                )
            )

    return conflicts


def compare_snapshots(old: Snapshot, new: Snapshot) -> SnapshotDiff:
    """Classify object ids as added, deleted or modified from ``old`` to ``new``."""
    objects_old = parse_document(old).index()
    objects_new = parse_document(new).index()
    diff = SnapshotDiff()
    for object_id, obj in objects_new.items():
        previous = objects_old.get(object_id)
        if previous is None:
            diff.added.append(object_id)
        elif previous.to_dict() != obj.to_dict():
            diff.modified.append(object_id)
    diff.deleted = [object_id for object_id in objects_old if object_id not in objects_new]
    return diff


def summarize_changes(
    snapshot: SceneDocument, parent_snapshot: Optional[SceneDocument] = None
) -> ChangeSummary:
    """Build a commit's change summary against its first parent."""
    details = [f"{len(snapshot)} objects on canvas"]
    if parent_snapshot is None:
        return ChangeSummary(added=len(snapshot), modified=0, deleted=0, details=details)

    diff = compare_snapshots(parent_snapshot, snapshot)
    types_new = {oid: obj.type for oid, obj in snapshot.index().items()}
    types_old = {oid: obj.type for oid, obj in parent_snapshot.index().items()}
    details.extend(f"Added {types_new[oid]} {oid}" for oid in diff.added)
    details.extend(f"Modified {types_new[oid]} {oid}" for oid in diff.modified)
    details.extend(f"Deleted {types_old[oid]} {oid}" for oid in diff.deleted)
    return ChangeSummary(
        added=len(diff.added),
        modified=len(diff.modified),
        deleted=len(diff.deleted),
        details=details,
    )
