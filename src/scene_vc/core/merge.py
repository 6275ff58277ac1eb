"""Merge resolver: combine two branch heads using explicit resolutions."""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import pydantic

from scene_vc.core.codec import parse_document
from scene_vc.core.conflicts import Snapshot
from scene_vc.core.graph import CommitGraph
from scene_vc.errors import ValidationError
from scene_vc.models.commit import Commit, ConflictResolution, ResolutionChoice
from scene_vc.models.scene import SceneDocument

logger = logging.getLogger(__name__)

ResolutionInput = Union[ConflictResolution, Dict[str, Any]]


def _identity(obj: Dict[str, Any]) -> Optional[str]:
    raw = obj.get("id") or obj.get("uuid")
    return None if raw is None or raw == "" else str(raw)


def _position_of(objects: List[Dict[str, Any]], object_id: str) -> Optional[int]:
    for index, obj in enumerate(objects):
        if _identity(obj) == object_id:
            return index
    return None


def _unique_by_object(resolutions: Iterable[ConflictResolution]) -> List[ConflictResolution]:
    """One resolution per object id, in first-seen order.

    Repeats with the same choice and value collapse; contradictory ones
    are rejected.
    """
    chosen: Dict[str, ConflictResolution] = {}
    for resolution in resolutions:
        seen = chosen.get(resolution.object_id)
        if seen is None:
            chosen[resolution.object_id] = resolution
        elif (seen.resolution, seen.value) != (resolution.resolution, resolution.value):
            raise ValidationError(
                f"Conflicting resolutions for {resolution.object_id}: "
                f"{seen.resolution.value} and {resolution.resolution.value}"
            )
    return list(chosen.values())


def apply_resolutions(
    snapshot_a: Snapshot,
    snapshot_b: Snapshot,
    resolutions: Iterable[ConflictResolution],
) -> SceneDocument:
    """Build the merged document. Snapshot A is the base.

    ``keep_b`` takes B's version of the object, including its absence.
    ``manual`` lays the resolution's value over the object's properties.
    Objects without a resolution keep A's version.
    """
    resolutions = _unique_by_object(resolutions)
    document = parse_document(snapshot_a).to_dict()
    objects: List[Dict[str, Any]] = document["objects"]
    objects_b = {oid: obj.to_dict() for oid, obj in parse_document(snapshot_b).index().items()}

    for resolution in resolutions:
        if resolution.resolution == ResolutionChoice.MANUAL and resolution.value is None:
            raise ValidationError(
                f"Manual resolution for {resolution.object_id} needs a value"
            )
        if (
            _position_of(objects, resolution.object_id) is None
            and resolution.object_id not in objects_b
        ):
            raise ValidationError(
                f"Object {resolution.object_id} is in neither snapshot"
            )

    for resolution in resolutions:
        position = _position_of(objects, resolution.object_id)
        theirs = objects_b.get(resolution.object_id)

        if resolution.resolution == ResolutionChoice.KEEP_A:
            continue

        if resolution.resolution == ResolutionChoice.KEEP_B:
            if theirs is None:
                if position is not None:
                    del objects[position]
                replacement = None
            else:
                replacement = copy.deepcopy(theirs)
        else:
            base = objects[position] if position is not None else theirs
            replacement = {**copy.deepcopy(base), **copy.deepcopy(resolution.value)}
            for key in ("id", "uuid", "type"):
                if key in base:
                    replacement[key] = base[key]

        if replacement is None:
            continue
        if position is None:
            objects.append(replacement)
        else:
            objects[position] = replacement

    return parse_document(document)


class MergeResolver:
    """Merges branch B into branch A and records a two-parent commit."""

    def __init__(self, graph: CommitGraph):
        self.graph = graph

    def _coerce(self, resolution: ResolutionInput) -> ConflictResolution:
        if not isinstance(resolution, ConflictResolution):
            try:
                resolution = ConflictResolution.model_validate(resolution)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid conflict resolution: {e}") from e
        if not resolution.resolved_by:
            resolution = resolution.model_copy(
                update={"resolved_by": self.graph.author.name}
            )
        return resolution

    def merge(
        self,
        branch_a_id: str,
        branch_b_id: str,
        resolutions: Iterable[ResolutionInput] = (),
    ) -> Commit:
        """Merge ``branch_b_id`` into ``branch_a_id``.

        The merged scene is loaded into the editor, committed on branch A
        with parents ``[headA, headB]``, and branch A becomes active.
        """
        if branch_a_id == branch_b_id:
            raise ValidationError("Cannot merge a branch into itself")

        branch_a = self.graph.get_branch(branch_a_id)
        branch_b = self.graph.get_branch(branch_b_id)
        for branch in (branch_a, branch_b):
            if not branch.has_commits:
                raise ValidationError(f"Branch {branch.name!r} has no commits")
        if branch_a.head_commit_id == branch_b.head_commit_id:
            raise ValidationError(
                f"{branch_a.name!r} and {branch_b.name!r} already point at the same commit"
            )

        resolutions = [self._coerce(r) for r in resolutions]
        commit_a = self.graph.get_commit(branch_a.head_commit_id)
        commit_b = self.graph.get_commit(branch_b.head_commit_id)

        merged = apply_resolutions(commit_a.snapshot, commit_b.snapshot, resolutions)
        self.graph.codec.restore(self.graph.scene, merged)

        commit = self.graph.record_commit(
            f"Merge {branch_b.name} into {branch_a.name}",
            ["merge"],
            branch_a.id,
            [commit_a.id, commit_b.id],
            conflict_resolutions=resolutions,
            activate=True,
        )
        logger.info(
            "Merged %s into %s with %d resolutions",
            branch_b.name,
            branch_a.name,
            len(resolutions),
        )
        return commit
