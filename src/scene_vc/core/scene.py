"""Scene-graph collaborators.

The engine never draws anything itself. It only needs to read the live
scene as a document, replace it from a document, and count its objects.
"""

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from scene_vc.errors import NotFoundError, SerializationError, StoreError

EMPTY_SCENE_VERSION = "5.3.0"


def empty_document() -> Dict[str, Any]:
    return {"version": EMPTY_SCENE_VERSION, "objects": []}


class SceneGraph(ABC):
    """Capability interface the editor provides to the engine."""

    @abstractmethod
    def export_document(self) -> Dict[str, Any]:
        """Return a serializable copy of the current scene."""

    @abstractmethod
    def load_document(self, document: Dict[str, Any]) -> None:
        """Replace the current scene's contents from a document."""

    def object_count(self) -> int:
        return len(self.export_document().get("objects") or [])


class InMemoryScene(SceneGraph):
    """A scene held as a plain document, with a few editing helpers."""

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self._document = copy.deepcopy(document) if document else empty_document()

    @property
    def objects(self) -> List[Dict[str, Any]]:
        return self._document.setdefault("objects", [])

    def export_document(self) -> Dict[str, Any]:
        return copy.deepcopy(self._document)

    def load_document(self, document: Dict[str, Any]) -> None:
        if not isinstance(document, dict):
            raise SerializationError(
                f"Scene document must be an object, got {type(document).__name__}"
            )
        self._document = copy.deepcopy(document)

    def add_object(self, obj: Dict[str, Any]) -> None:
        self.objects.append(copy.deepcopy(obj))

    def find_object(self, object_id: str) -> Dict[str, Any]:
        for obj in self.objects:
            raw = obj.get("id") or obj.get("uuid")
            if raw is not None and str(raw) == str(object_id):
                return obj
        raise NotFoundError("object", object_id)

    def update_object(self, object_id: str, **properties: Any) -> None:
        self.find_object(object_id).update(properties)

    def remove_object(self, object_id: str) -> None:
        obj = self.find_object(object_id)
        self.objects.remove(obj)

    def clear(self) -> None:
        self._document = empty_document()


class FileScene(SceneGraph):
    """A scene persisted as a JSON document on disk (used by the CLI)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def export_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return empty_document()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SerializationError(
                f"Malformed scene file {self.path} (line {e.lineno}, column {e.colno})"
            ) from e
        except OSError as e:
            raise StoreError("Could not read scene file", str(self.path)) from e
        if not isinstance(data, dict):
            raise SerializationError(f"Scene file {self.path} is not a JSON object")
        return data

    def load_document(self, document: Dict[str, Any]) -> None:
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Scene document is not JSON-serializable: {e}") from e
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError("Could not write scene file", str(self.path)) from e
