"""Tests for merging branches with explicit resolutions."""

import pytest

from scene_vc.core.merge import apply_resolutions
from scene_vc.errors import NotFoundError, ValidationError
from scene_vc.models.commit import ConflictResolution, ResolutionChoice
from scenes import circle, document, rect, text


@pytest.fixture
def diverged(graph, scene):
    """main and feature both edit r1 after a shared base commit."""
    scene.load_document(document(rect(), text()))
    base = graph.create_commit("base")
    feature = graph.create_branch("feature")

    scene.update_object("r1", fill="#0000ff")
    main_head = graph.create_commit("main recolor")

    graph.switch_branch(feature.id)
    scene.update_object("r1", left=300)
    scene.update_object("t1", text="Feature title")
    feature_head = graph.create_commit("feature move")

    return base, main_head, feature, feature_head


def test_merge_commit_parents_and_snapshot(graph, resolver, store, diverged):
    """keep_b takes B's object; unmentioned objects keep A's version."""
    _, main_head, feature, feature_head = diverged

    merge = resolver.merge("main", feature.id, [{"objectId": "r1", "resolution": "keep_b"}])

    assert merge.parent_ids == [main_head.id, feature_head.id]
    assert merge.is_merge
    assert merge.tags == ["merge"]
    assert merge.message == "Merge feature into main"
    objects = merge.snapshot.index()
    assert objects["r1"].left == 300
    assert objects["r1"].fill == "#ff0000"
    assert objects["t1"].text == "Hello"

    assert graph.get_branch("main").head_commit_id == merge.id
    assert graph.get_branch(feature.id).head_commit_id == feature_head.id
    assert store.get_active_branch() == "main"


def test_merge_records_resolutions(graph, resolver, diverged):
    _, _, feature, _ = diverged

    merge = resolver.merge(
        "main",
        feature.id,
        [ConflictResolution(object_id="r1", resolution=ResolutionChoice.KEEP_A)],
    )

    stored = graph.get_commit(merge.id)
    assert stored.parent_ids == merge.parent_ids
    assert len(stored.conflict_resolutions) == 1
    assert stored.conflict_resolutions[0].resolution == ResolutionChoice.KEEP_A
    assert stored.conflict_resolutions[0].resolved_by == "Designer"
    assert stored.snapshot.index()["r1"].fill == "#0000ff"


def test_merge_loads_result_into_scene(resolver, scene, diverged):
    _, _, feature, _ = diverged
    resolver.merge("main", feature.id, [{"objectId": "t1", "resolution": "keep_b"}])

    objects = {o["id"]: o for o in scene.export_document()["objects"]}
    assert objects["t1"]["text"] == "Feature title"
    assert objects["r1"]["left"] == 10


def test_merge_is_deterministic(graph, resolver, diverged):
    """The same inputs produce the same parents and snapshot."""
    _, main_head, feature, feature_head = diverged
    resolutions = [{"objectId": "r1", "resolution": "keep_b"}]

    first = resolver.merge("main", feature.id, resolutions)
    expected = apply_resolutions(
        main_head.snapshot,
        feature_head.snapshot,
        [ConflictResolution.model_validate(r) for r in resolutions],
    )

    assert first.snapshot.to_dict() == expected.to_dict()


def test_manual_resolution_overrides_properties(resolver, diverged):
    _, _, feature, _ = diverged

    merge = resolver.merge(
        "main",
        feature.id,
        [
            {
                "objectId": "r1",
                "resolution": "manual",
                "value": {"left": 150, "fill": "#abcdef", "id": "hijack", "type": "circle"},
            }
        ],
    )

    r1 = merge.snapshot.index()["r1"]
    assert (r1.left, r1.fill, r1.type) == (150, "#abcdef", "rect")
    assert "hijack" not in merge.snapshot.index()


def test_manual_resolution_needs_value(graph, resolver, store, diverged):
    _, main_head, feature, _ = diverged
    commits_before = len(store.get_commits())

    with pytest.raises(ValidationError):
        resolver.merge("main", feature.id, [{"objectId": "r1", "resolution": "manual"}])

    assert len(store.get_commits()) == commits_before
    assert graph.get_branch("main").head_commit_id == main_head.id


def test_merge_validation(graph, resolver, diverged):
    _, _, feature, _ = diverged
    same = graph.create_branch("same-as-main", graph.get_branch("main").head_commit_id)

    with pytest.raises(ValidationError):
        resolver.merge("main", "main")
    with pytest.raises(NotFoundError):
        resolver.merge("main", "branch_missing")
    with pytest.raises(ValidationError):
        resolver.merge("main", same.id)
    with pytest.raises(ValidationError):
        resolver.merge("main", feature.id, [{"objectId": "ghost", "resolution": "keep_b"}])


def test_merge_with_empty_branch(graph, resolver):
    bare = graph.create_branch("bare")
    graph.create_commit("base")

    with pytest.raises(ValidationError, match="has no commits"):
        resolver.merge("main", bare.id)
    with pytest.raises(ValidationError, match="has no commits"):
        resolver.merge(bare.id, "main")


def test_keep_b_handles_deletions():
    """keep_b removes objects B deleted and adds objects only B has."""
    snapshot_a = document(rect(), circle())
    snapshot_b = document(rect(), text())

    merged = apply_resolutions(
        snapshot_a,
        snapshot_b,
        [
            ConflictResolution(object_id="c1", resolution=ResolutionChoice.KEEP_B),
            ConflictResolution(object_id="t1", resolution=ResolutionChoice.KEEP_B),
        ],
    )

    assert [o.object_id for o in merged.objects] == ["r1", "t1"]


def test_keep_a_leaves_b_only_objects_out():
    merged = apply_resolutions(
        document(rect()),
        document(rect(), text()),
        [ConflictResolution(object_id="t1", resolution=ResolutionChoice.KEEP_A)],
    )
    assert [o.object_id for o in merged.objects] == ["r1"]


def test_apply_resolutions_does_not_mutate_inputs():
    snapshot_a = document(rect())
    snapshot_b = document(rect(left=1))

    apply_resolutions(
        snapshot_a,
        snapshot_b,
        [ConflictResolution(object_id="r1", resolution=ResolutionChoice.KEEP_B)],
    )

    assert snapshot_a["objects"][0]["left"] == 10


def test_malformed_resolution_is_a_validation_error(graph, resolver, store, diverged):
    _, main_head, feature, _ = diverged
    commits_before = len(store.get_commits())

    with pytest.raises(ValidationError, match="Invalid conflict resolution"):
        resolver.merge("main", feature.id, [{"objectId": "r1", "resolution": "bogus"}])
    with pytest.raises(ValidationError):
        resolver.merge("main", feature.id, [{"resolution": "keep_b"}])

    assert len(store.get_commits()) == commits_before
    assert graph.get_branch("main").head_commit_id == main_head.id


def test_repeated_resolutions_for_one_object():
    """One entry per conflict repeats the object id; identical repeats collapse."""
    merged = apply_resolutions(
        document(rect(), text()),
        document(rect(left=300, fill="#0000ff")),
        [
            ConflictResolution(object_id="t1", resolution=ResolutionChoice.KEEP_B),
            ConflictResolution(object_id="t1", resolution=ResolutionChoice.KEEP_B),
            ConflictResolution(object_id="r1", resolution=ResolutionChoice.KEEP_B),
            ConflictResolution(object_id="r1", resolution=ResolutionChoice.KEEP_B),
        ],
    )

    assert [o.object_id for o in merged.objects] == ["r1"]
    assert merged.objects[0].left == 300


def test_contradictory_resolutions_are_rejected():
    with pytest.raises(ValidationError, match="Conflicting resolutions for t1"):
        apply_resolutions(
            document(rect(), text()),
            document(rect()),
            [
                ConflictResolution(object_id="t1", resolution=ResolutionChoice.KEEP_B),
                ConflictResolution(
                    object_id="t1",
                    resolution=ResolutionChoice.MANUAL,
                    value={"text": "Kept"},
                ),
            ],
        )


def test_merge_with_numeric_object_ids(graph, resolver, scene):
    scene.load_document(document(rect(1), rect(2)))
    graph.create_commit("base")
    side = graph.create_branch("side")
    scene.update_object(1, fill="#0000ff")
    graph.create_commit("recolor")
    graph.switch_branch(side.id)
    scene.update_object(1, left=50)
    graph.create_commit("move")

    merge = resolver.merge("main", side.id, [{"objectId": "1", "resolution": "keep_b"}])

    objects = merge.snapshot.to_dict()["objects"]
    assert [o["id"] for o in objects] == [1, 2]
    assert (objects[0]["left"], objects[0]["fill"]) == (50, "#ff0000")
