"""On-disk scene repository: config, store and scene file under ``.scene-vc``."""

import logging
from pathlib import Path
from typing import Optional

from scene_vc.config import CONFIG_FILE_NAME, RepositoryConfig
from scene_vc.core.codec import SceneCodec
from scene_vc.core.graph import CommitGraph
from scene_vc.core.merge import MergeResolver
from scene_vc.core.scene import FileScene
from scene_vc.core.store import ContentStore, GitStore, JsonFileStore
from scene_vc.errors import ValidationError

logger = logging.getLogger(__name__)

REPOSITORY_DIR = ".scene-vc"


class SceneRepository:
    """Wires the version-control engine to a project directory."""

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root).resolve()
        self.vc_dir = self.project_root / REPOSITORY_DIR
        self.config_file = self.vc_dir / CONFIG_FILE_NAME
        self.store_dir = self.vc_dir / "store"
        self.log_file = self.vc_dir / "scene-vc.log"
        self._config: Optional[RepositoryConfig] = None
        self._store: Optional[ContentStore] = None

    @classmethod
    def find(cls, start: Path) -> Optional["SceneRepository"]:
        """Locate the nearest initialized repository at or above ``start``."""
        start = Path(start).resolve()
        for parent in [start] + list(start.parents):
            repo = cls(parent)
            if repo.exists():
                return repo
        return None

    def exists(self) -> bool:
        """Check if the repository has been initialized."""
        return self.vc_dir.is_dir() and self.config_file.exists()

    def init(self, store: str = "git", scene_file: str = "scene.json") -> RepositoryConfig:
        """Create ``.scene-vc`` with a config file and an empty store."""
        if self.exists():
            raise ValidationError(
                f"scene-vc already initialized in {self.project_root}. "
                f"Remove {self.vc_dir} manually if you want to reinitialize."
            )
        if self.vc_dir.exists() and any(self.vc_dir.iterdir()):
            raise ValidationError(
                f"Directory {self.vc_dir} already exists and is not empty."
            )

        self.vc_dir.mkdir(parents=True, exist_ok=True)
        config = RepositoryConfig(store=store, scene_file=scene_file)
        config.save(self.config_file)
        self._config = config
        self._store = None

        if isinstance(self.store, GitStore):
            # Touch the repository so it exists before the first commit.
            self.store.repo
        logger.info("Initialized scene repository in %s", self.vc_dir)
        return config

    @property
    def config(self) -> RepositoryConfig:
        if self._config is None:
            self._config = RepositoryConfig.load(self.config_file)
        return self._config

    @property
    def store(self) -> ContentStore:
        if self._store is None:
            if self.config.store == "git":
                self._store = GitStore(self.store_dir)
            else:
                self._store = JsonFileStore(self.store_dir)
        return self._store

    @property
    def scene(self) -> FileScene:
        return FileScene(self.project_root / self.config.scene_file)

    def open_graph(self) -> CommitGraph:
        return CommitGraph(
            self.scene,
            self.store,
            codec=SceneCodec(self.config.thumbnail),
            author=self.config.author,
        )

    def resolver(self, graph: Optional[CommitGraph] = None) -> MergeResolver:
        return MergeResolver(graph or self.open_graph())
