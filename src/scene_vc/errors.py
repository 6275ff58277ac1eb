"""Typed errors raised by the version-control engine."""

from typing import Optional


class SceneVCError(Exception):
    """Base error for scene-vc."""


class NotFoundError(SceneVCError):
    """A referenced commit or branch does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(SceneVCError):
    """Input rejected before any state was touched."""


class SerializationError(SceneVCError):
    """A scene document or persisted record could not be read or written."""


class StoreError(SceneVCError):
    """The backing store failed to read or write."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message if path is None else f"{message}: {path}")


class UnimplementedError(SceneVCError, NotImplementedError):
    """An action that is documented but deliberately not supported."""
