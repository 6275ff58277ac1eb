"""Commit graph: commit creation, branch heads and ancestry."""

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from scene_vc.core.codec import SceneCodec
from scene_vc.core.conflicts import (
    SnapshotDiff,
    compare_snapshots,
    detect_conflicts,
    summarize_changes,
)
from scene_vc.core.scene import SceneGraph
from scene_vc.core.store import ContentStore
from scene_vc.errors import (
    NotFoundError,
    UnimplementedError,
    ValidationError,
)
from scene_vc.models.branch import DEFAULT_BRANCH_ID, Branch
from scene_vc.models.commit import Author, Commit, ConflictResolution, MergeConflict
from scene_vc.utils.dates import now_ms

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = Author(name="Designer", initials="D")


def _require_text(value: Optional[str], what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{what} must not be empty")
    return text


def _normalize_tags(tags: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class CommitGraph:
    """Append-only DAG of scene commits with per-branch head pointers.

    Operations that act on "the current branch" take an optional
    ``branch_id``; without one they use the store's active-branch pointer.
    """

    def __init__(
        self,
        scene: SceneGraph,
        store: ContentStore,
        codec: Optional[SceneCodec] = None,
        author: Optional[Author] = None,
    ):
        self.scene = scene
        self.store = store
        self.codec = codec or SceneCodec()
        self.author = author or DEFAULT_AUTHOR

    # Lookups

    def _load(self) -> Tuple[List[Commit], List[Branch]]:
        return self.store.get_commits(), self.store.get_branches()

    @staticmethod
    def _find_commit(commits: Sequence[Commit], commit_id: str) -> Commit:
        for commit in commits:
            if commit.id == commit_id:
                return commit
        raise NotFoundError("commit", commit_id)

    @staticmethod
    def _find_branch(branches: Sequence[Branch], branch_id: str) -> Branch:
        for branch in branches:
            if branch.id == branch_id:
                return branch
        raise NotFoundError("branch", branch_id)

    def get_commit(self, commit_id: str) -> Commit:
        return self._find_commit(self.store.get_commits(), commit_id)

    def get_branch(self, branch_id: str) -> Branch:
        return self._find_branch(self.store.get_branches(), branch_id)

    def resolve_branch(self, ref: str) -> Branch:
        """Find a branch by id, falling back to its name."""
        branches = self.store.get_branches()
        for branch in branches:
            if branch.id == ref:
                return branch
        for branch in branches:
            if branch.name == ref:
                return branch
        raise NotFoundError("branch", ref)

    def resolve_commit(self, ref: str) -> Commit:
        """Find a commit by full id or by a unique id suffix."""
        commits = self.store.get_commits()
        matches = [c for c in commits if c.id == ref]
        if not matches and ref:
            matches = [c for c in commits if c.id.endswith(ref)]
        if len(matches) > 1:
            raise ValidationError(f"Commit reference {ref!r} is ambiguous")
        if not matches:
            raise NotFoundError("commit", ref)
        return matches[0]

    def list_branches(self) -> List[Branch]:
        return self.store.get_branches()

    def active_branch_id(self, branch_id: Optional[str] = None) -> str:
        return branch_id or self.store.get_active_branch()

    def current_branch(self) -> Branch:
        return self.get_branch(self.active_branch_id())

    # History and ancestry

    def commit_history(self) -> List[Commit]:
        """All commits, newest first. Equal timestamps list later inserts first."""
        commits = self.store.get_commits()
        order = sorted(
            range(len(commits)), key=lambda i: (commits[i].timestamp, i), reverse=True
        )
        return [commits[i] for i in order]

    def ancestors(self, commit_id: str) -> Set[str]:
        """Ids reachable from ``commit_id`` through parent links, itself included."""
        by_id: Dict[str, Commit] = {c.id: c for c in self.store.get_commits()}
        if commit_id not in by_id:
            raise NotFoundError("commit", commit_id)
        seen = {commit_id}
        queue = deque([commit_id])
        while queue:
            for parent_id in by_id[queue.popleft()].parent_ids:
                if parent_id not in seen and parent_id in by_id:
                    seen.add(parent_id)
                    queue.append(parent_id)
        return seen

    def is_ancestor(self, ancestor_id: str, descendant_id: str) -> bool:
        return ancestor_id in self.ancestors(descendant_id)

    def merge_base(self, commit_a_id: str, commit_b_id: str) -> Optional[Commit]:
        """Most recent commit reachable from both, or None for unrelated histories."""
        common = self.ancestors(commit_a_id) & self.ancestors(commit_b_id)
        candidates = [c for c in self.commit_history() if c.id in common]
        return candidates[0] if candidates else None

    def branch_history(self, branch_id: Optional[str] = None) -> List[Commit]:
        """Commits reachable from a branch head, newest first."""
        branch = self.get_branch(self.active_branch_id(branch_id))
        if not branch.has_commits:
            return []
        reachable = self.ancestors(branch.head_commit_id)
        return [c for c in self.commit_history() if c.id in reachable]

    # Commits

    def create_commit(
        self, message: str, tags: Iterable[str] = (), *, branch_id: Optional[str] = None
    ) -> Commit:
        """Snapshot the scene onto a branch and advance its head."""
        message = _require_text(message, "Commit message")
        branch = self.get_branch(self.active_branch_id(branch_id))
        parent_ids = [branch.head_commit_id] if branch.has_commits else []
        return self.record_commit(message, tags, branch.id, parent_ids)

    def record_commit(
        self,
        message: str,
        tags: Iterable[str],
        branch_id: str,
        parent_ids: List[str],
        conflict_resolutions: Optional[List[ConflictResolution]] = None,
        activate: bool = False,
    ) -> Commit:
        """Build the complete commit record and persist it with the head update.

        Nothing is written if the scene cannot be captured.
        """
        commits, branches = self._load()
        branch = self._find_branch(branches, branch_id)
        parents = [self._find_commit(commits, parent_id) for parent_id in parent_ids]

        snapshot, thumbnail = self.codec.capture(self.scene)
        summary = summarize_changes(snapshot, parents[0].snapshot if parents else None)

        fields = dict(
            id=self.store.new_commit_id(),
            parent_ids=list(parent_ids),
            timestamp=now_ms(),
            author=self.author,
            message=message,
            tags=_normalize_tags(tags),
            snapshot=snapshot,
            thumbnail=thumbnail,
            change_summary=summary,
        )
        if conflict_resolutions is not None:
            fields["conflict_resolutions"] = list(conflict_resolutions)
        commit = Commit(**fields)

        commits.append(commit)
        branch.head_commit_id = commit.id
        self.store.save(
            commits=commits,
            branches=branches,
            active_branch=branch.id if activate else None,
            message=f"Commit {commit.id} on {branch.name}: {message}",
        )
        logger.info(
            "Committed %s on %s (+%d ~%d -%d)",
            commit.short_id,
            branch.name,
            summary.added,
            summary.modified,
            summary.deleted,
        )
        return commit

    def delete_commit(self, commit_id: str) -> None:
        """Commits are append-only; deletion is not supported."""
        self.get_commit(commit_id)
        raise UnimplementedError("Deleting commits is not supported")

    def revert_to_commit(self, commit_id: str) -> Commit:
        """Load a commit's snapshot into the scene without touching any branch."""
        commit = self.get_commit(commit_id)
        self.codec.restore(self.scene, commit.snapshot)
        logger.info("Scene reverted to %s", commit.short_id)
        return commit

    def compare_commits(self, commit_a_id: str, commit_b_id: str) -> SnapshotDiff:
        commits = self.store.get_commits()
        commit_a = self._find_commit(commits, commit_a_id)
        commit_b = self._find_commit(commits, commit_b_id)
        return compare_snapshots(commit_a.snapshot, commit_b.snapshot)

    # Branches

    def create_branch(
        self,
        name: str,
        from_commit_id: Optional[str] = None,
        *,
        branch_id: Optional[str] = None,
    ) -> Branch:
        """Create a branch at a commit, or at the current branch's head.

        The active branch does not change.
        """
        name = _require_text(name, "Branch name")
        commits, branches = self._load()
        if any(b.name == name for b in branches):
            raise ValidationError(f"A branch named {name!r} already exists")

        if from_commit_id:
            head = self._find_commit(commits, from_commit_id).id
        else:
            source = self._find_branch(branches, self.active_branch_id(branch_id))
            head = source.head_commit_id

        branch = Branch(
            id=self.store.new_branch_id(),
            name=name,
            head_commit_id=head,
            created_at=now_ms(),
            created_by=self.author.name,
        )
        branches.append(branch)
        self.store.save(branches=branches, message=f"Create branch {name}")
        logger.info("Created branch %s at %s", name, head[-8:] or "(empty)")
        return branch

    def switch_branch(self, branch_id: str) -> Branch:
        """Make a branch active and load its head into the scene."""
        branch = self.get_branch(branch_id)
        if branch.has_commits:
            self.codec.restore(self.scene, self.get_commit(branch.head_commit_id).snapshot)
        self.store.set_active_branch(branch.id)
        logger.info("Switched to branch %s", branch.name)
        return branch

    def delete_branch(self, branch_id: str) -> Branch:
        """Remove a branch pointer. Its commits stay in the graph."""
        branches = self.store.get_branches()
        branch = self._find_branch(branches, branch_id)
        if branch.id == DEFAULT_BRANCH_ID:
            raise ValidationError("The default branch cannot be deleted")
        if branch.id == self.store.get_active_branch():
            raise ValidationError("The active branch cannot be deleted")
        branches.remove(branch)
        self.store.save(branches=branches, message=f"Delete branch {branch.name}")
        logger.info("Deleted branch %s", branch.name)
        return branch

    # Conflicts

    def detect_conflicts(self, branch_a_id: str, branch_b_id: str) -> List[MergeConflict]:
        """Compare the heads of two branches."""
        commits, branches = self._load()
        pair = [self._find_branch(branches, b) for b in (branch_a_id, branch_b_id)]
        for branch in pair:
            if not branch.has_commits:
                raise ValidationError(f"Branch {branch.name!r} has no commits")
        commit_a, commit_b = [self._find_commit(commits, b.head_commit_id) for b in pair]
        return detect_conflicts(commit_a.snapshot, commit_b.snapshot, commit_a.id, commit_b.id)

    # Maintenance

    def clear_all_data(self) -> None:
        """Drop every commit and branch. The default branch comes back empty."""
        self.store.clear()

    def create_sample_data(self) -> List[Commit]:
        """Seed an empty repository with a short history on two branches."""
        if self.store.get_commits():
            raise ValidationError("Sample data needs an empty repository")

        base = {"version": "5.3.0", "objects": [dict(SAMPLE_RECT)]}
        self.scene.load_document(base)
        created = [self.create_commit("Initial layout", ["init"], branch_id=DEFAULT_BRANCH_ID)]

        base["objects"].append(dict(SAMPLE_TITLE))
        self.scene.load_document(base)
        created.append(self.create_commit("Add title", branch_id=DEFAULT_BRANCH_ID))

        feature = self.create_branch("feature", created[-1].id)
        accent = {
            "version": "5.3.0",
            "objects": [
                {**SAMPLE_RECT, "left": 140, "fill": "#f97316"},
                dict(SAMPLE_TITLE),
                dict(SAMPLE_CIRCLE),
            ],
        }
        self.scene.load_document(accent)
        created.append(
            self.create_commit("Explore circle accent", ["wip"], branch_id=feature.id)
        )

        self.switch_branch(DEFAULT_BRANCH_ID)
        return created


SAMPLE_RECT = {
    "id": "sample-rect",
    "type": "rect",
    "left": 100,
    "top": 100,
    "width": 200,
    "height": 120,
    "fill": "#3b82f6",
    "stroke": "#1e3a8a",
}
SAMPLE_TITLE = {
    "id": "sample-title",
    "type": "text",
    "left": 100,
    "top": 40,
    "text": "Hello canvas",
    "fontSize": 24,
    "fill": "#111827",
}
SAMPLE_CIRCLE = {
    "id": "sample-circle",
    "type": "circle",
    "left": 380,
    "top": 120,
    "radius": 50,
    "width": 100,
    "height": 100,
    "fill": "#10b981",
}
