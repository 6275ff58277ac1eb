"""Content store: durable records for commits, branches and the active branch.

Every adapter keeps the three records as JSON text under fixed keys and
rewrites whole lists on each save. Writes are read-modify-write with no
concurrency check, so two writers sharing one store can lose each
other's branch updates.
"""

import json
import logging
import random
import string
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import git
import pydantic
from git import Repo

from scene_vc.errors import SerializationError, StoreError
from scene_vc.models.branch import DEFAULT_BRANCH_ID, SYSTEM_AUTHOR, Branch
from scene_vc.models.commit import Commit
from scene_vc.utils.dates import now_ms

logger = logging.getLogger(__name__)

COMMITS_KEY = "commits"
BRANCHES_KEY = "branches"
ACTIVE_BRANCH_KEY = "active_branch"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 9) -> str:
    return "".join(random.choices(_ID_ALPHABET, k=length))


def default_branch() -> Branch:
    return Branch(
        id=DEFAULT_BRANCH_ID,
        name=DEFAULT_BRANCH_ID,
        head_commit_id="",
        created_at=now_ms(),
        created_by=SYSTEM_AUTHOR,
    )


class ContentStore(ABC):
    """Persistence port used by the commit graph."""

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the raw text stored under ``key`` or None."""

    @abstractmethod
    def _write(self, records: Dict[str, str], message: str) -> None:
        """Persist all ``records`` together, or none of them."""

    @abstractmethod
    def _delete_all(self) -> None:
        """Remove every record."""

    def _load_list(self, key: str) -> Optional[list]:
        text = self._read(key)
        if text is None:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt {key} record: {e}") from e
        if not isinstance(data, list):
            raise SerializationError(f"Corrupt {key} record: expected a list")
        return data

    def get_commits(self) -> List[Commit]:
        data = self._load_list(COMMITS_KEY)
        if data is None:
            return []
        try:
            return [Commit.model_validate(record) for record in data]
        except pydantic.ValidationError as e:
            raise SerializationError(f"Corrupt commit record: {e}") from e

    def get_branches(self) -> List[Branch]:
        """Stored branches; a fresh store reports just the default branch."""
        data = self._load_list(BRANCHES_KEY)
        if data is None:
            return [default_branch()]
        try:
            return [Branch.model_validate(record) for record in data]
        except pydantic.ValidationError as e:
            raise SerializationError(f"Corrupt branch record: {e}") from e

    def get_active_branch(self) -> str:
        return (self._read(ACTIVE_BRANCH_KEY) or "").strip() or DEFAULT_BRANCH_ID

    def set_active_branch(self, branch_id: str) -> None:
        self._write({ACTIVE_BRANCH_KEY: branch_id}, f"Switch to {branch_id}")

    def save_commits(self, commits: List[Commit]) -> None:
        self.save(commits=commits)

    def save_branches(self, branches: List[Branch]) -> None:
        self.save(branches=branches)

    def save(
        self,
        commits: Optional[List[Commit]] = None,
        branches: Optional[List[Branch]] = None,
        active_branch: Optional[str] = None,
        message: str = "Update records",
    ) -> None:
        """Write the given records in one step.

        Everything is encoded before anything is written.
        """
        records: Dict[str, str] = {}
        if active_branch is not None:
            records[ACTIVE_BRANCH_KEY] = active_branch
        try:
            if commits is not None:
                records[COMMITS_KEY] = json.dumps([c.to_record() for c in commits])
            if branches is not None:
                records[BRANCHES_KEY] = json.dumps(
                    [b.model_dump(mode="json", by_alias=True) for b in branches]
                )
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Could not encode records: {e}") from e
        if records:
            self._write(records, message)

    def clear(self) -> None:
        self._delete_all()
        logger.info("Cleared all version control data")

    def new_commit_id(self) -> str:
        return f"commit_{now_ms()}_{_random_suffix()}"

    def new_branch_id(self) -> str:
        return f"branch_{now_ms()}_{_random_suffix()}"


class MemoryStore(ContentStore):
    """Process-local store. Each instance is an independent repository."""

    def __init__(self) -> None:
        self._records: Dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self._records.get(key)

    def _write(self, records: Dict[str, str], message: str) -> None:
        self._records.update(records)

    def _delete_all(self) -> None:
        self._records.clear()


class JsonFileStore(ContentStore):
    """Stores each record as a file in a directory."""

    FILE_NAMES = {
        COMMITS_KEY: "commits.json",
        BRANCHES_KEY: "branches.json",
        ACTIVE_BRANCH_KEY: "ACTIVE_BRANCH",
    }

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / self.FILE_NAMES[key]

    def _read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError("Could not read record", str(path)) from e

    def _write(self, records: Dict[str, str], message: str) -> None:
        # Stage every temp file first so a failure leaves the old records.
        previous = {key: self._read(key) for key in records}
        staged = []
        replaced = []
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            for key, text in records.items():
                path = self.path_for(key)
                tmp = path.with_name(path.name + ".tmp")
                tmp.write_text(text, encoding="utf-8")
                staged.append((key, tmp, path))
            for key, tmp, path in staged:
                tmp.replace(path)
                replaced.append((path, previous[key]))
        except OSError as e:
            for _, tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            self._roll_back(replaced)
            raise StoreError("Could not write records", str(self.directory)) from e

    @staticmethod
    def _roll_back(replaced: List[Tuple[Path, Optional[str]]]) -> None:
        for path, previous in replaced:
            try:
                if previous is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_text(previous, encoding="utf-8")
            except OSError as e:
                logger.error("Could not restore %s: %s", path, e)

    def _delete_all(self) -> None:
        for key in self.FILE_NAMES:
            self.path_for(key).unlink(missing_ok=True)


class GitStore(JsonFileStore):
    """A JSON file store whose directory is a git repository.

    Each write becomes one git commit, so the store keeps an audit trail.
    """

    def __init__(self, directory: Path):
        super().__init__(directory)
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the git repository, initializing if needed."""
        if self._repo is None:
            self.directory.mkdir(parents=True, exist_ok=True)
            if (self.directory / ".git").exists():
                self._repo = Repo(self.directory)
            else:
                self._repo = Repo.init(self.directory)
                with self._repo.config_writer() as config:
                    config.set_value("user", "name", "scene-vc")
                    config.set_value("user", "email", "scene-vc@localhost")
                logger.debug("Initialized store repository in %s", self.directory)
        return self._repo

    def _write(self, records: Dict[str, str], message: str) -> None:
        repo = self.repo
        super()._write(records, message)
        try:
            repo.index.add([self.FILE_NAMES[key] for key in records])
            repo.index.commit(message)
        except (git.exc.GitError, OSError) as e:
            raise StoreError("Could not commit records", str(self.directory)) from e

    def _delete_all(self) -> None:
        repo = self.repo
        tracked = [
            name for name in self.FILE_NAMES.values() if (name, 0) in repo.index.entries
        ]
        super()._delete_all()
        if tracked:
            try:
                repo.index.remove(tracked)
                repo.index.commit("Clear all data")
            except (git.exc.GitError, OSError) as e:
                raise StoreError("Could not commit records", str(self.directory)) from e

    def history(self, max_count: int = 20) -> List[str]:
        """Messages of the most recent store writes, newest first."""
        if not self.repo.head.is_valid():
            return []
        return [c.message.strip() for c in self.repo.iter_commits(max_count=max_count)]
