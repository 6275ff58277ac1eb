"""Shared fixtures for scene-vc tests."""

import pytest

from scene_vc.core.graph import CommitGraph
from scene_vc.core.merge import MergeResolver
from scene_vc.core.scene import InMemoryScene
from scene_vc.core.store import MemoryStore


@pytest.fixture
def scene():
    return InMemoryScene()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def graph(scene, store):
    return CommitGraph(scene, store)


@pytest.fixture
def resolver(graph):
    return MergeResolver(graph)
