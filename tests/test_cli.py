"""Tests for the scene-vc command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from scene_vc.cli.main import main
from scene_vc.core.repository import SceneRepository
from scenes import circle, document, rect


def write_scene(*objects):
    Path("scene.json").write_text(json.dumps(document(*objects)))


def read_scene():
    return json.loads(Path("scene.json").read_text())


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each command from a fresh temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def project(runner, workdir):
    """An initialized project using the JSON store."""
    result = runner.invoke(main, ["init", "--store", "json"])
    assert result.exit_code == 0, result.output
    return workdir


def test_init_creates_repository(runner, workdir):
    result = runner.invoke(main, ["init"])

    assert result.exit_code == 0
    assert "Initialized scene-vc" in result.output
    repo = SceneRepository(workdir)
    assert repo.exists()
    assert repo.config.store == "git"
    assert (repo.store_dir / ".git").exists()


def test_init_twice_fails(runner, project):
    result = runner.invoke(main, ["init"])
    assert result.exit_code != 0
    assert "already initialized" in result.output


def test_commands_need_repository(runner, workdir):
    result = runner.invoke(main, ["status"])
    assert result.exit_code != 0
    assert "not initialized" in result.output


def test_commit_and_log(runner, project):
    write_scene(rect())
    result = runner.invoke(main, ["commit", "-m", "init", "-t", "first"])
    assert result.exit_code == 0, result.output
    assert "1 added" in result.output

    result = runner.invoke(main, ["log", "--oneline"])
    assert result.exit_code == 0
    assert "init" in result.output
    assert "(first)" in result.output

    result = runner.invoke(main, ["log"])
    assert "1 objects on canvas" in result.output


def test_empty_commit_message_is_rejected(runner, project):
    result = runner.invoke(main, ["commit", "-m", "  "])
    assert result.exit_code != 0
    assert "must not be empty" in result.output


def test_branch_switch_and_status(runner, project):
    write_scene(rect())
    runner.invoke(main, ["commit", "-m", "init"])

    result = runner.invoke(main, ["branch", "feature"])
    assert result.exit_code == 0
    assert "Created branch feature" in result.output

    listing = runner.invoke(main, ["branch"])
    assert "feature" in listing.output
    assert "main" in listing.output

    assert runner.invoke(main, ["switch", "feature"]).exit_code == 0
    write_scene(rect(), circle())
    runner.invoke(main, ["commit", "-m", "add circle"])

    result = runner.invoke(main, ["switch", "main"])
    assert result.exit_code == 0
    assert len(read_scene()["objects"]) == 1

    status = runner.invoke(main, ["status"])
    assert "Branch: main" in status.output
    assert "Commits: 2" in status.output
    assert "Objects in scene: 1" in status.output


def test_switch_unknown_branch(runner, project):
    result = runner.invoke(main, ["switch", "nope"])
    assert result.exit_code != 0
    assert "branch not found: nope" in result.output


def test_conflicts_and_merge(runner, project):
    write_scene(rect())
    runner.invoke(main, ["commit", "-m", "base"])
    runner.invoke(main, ["branch", "feature"])
    write_scene(rect(fill="#0000ff"))
    runner.invoke(main, ["commit", "-m", "recolor"])
    runner.invoke(main, ["switch", "feature"])
    write_scene(rect(left=300))
    runner.invoke(main, ["commit", "-m", "move"])

    result = runner.invoke(main, ["conflicts", "main", "feature", "--json"])
    assert result.exit_code == 0
    conflicts = json.loads(result.output)
    assert [c["conflictType"] for c in conflicts] == ["position", "style"]

    result = runner.invoke(main, ["merge", "main", "feature", "--keep-b", "r1"])
    assert result.exit_code == 0, result.output
    assert "Merge feature into main" in result.output
    assert read_scene()["objects"][0]["left"] == 300

    repo = SceneRepository(project)
    graph = repo.open_graph()
    head = graph.get_commit(graph.get_branch("main").head_commit_id)
    assert head.is_merge
    assert graph.active_branch_id() == "main"


def test_merge_manual_option_validation(runner, project):
    result = runner.invoke(main, ["merge", "main", "feature", "--manual", "r1"])
    assert result.exit_code != 0
    assert "ID=JSON" in result.output


def test_revert_and_compare(runner, project):
    write_scene(rect())
    runner.invoke(main, ["commit", "-m", "one"])
    write_scene(rect(), circle())
    runner.invoke(main, ["commit", "-m", "two"])

    graph = SceneRepository(project).open_graph()
    second, first = graph.commit_history()

    result = runner.invoke(main, ["compare", first.id, second.id])
    assert "Added: c1" in result.output

    result = runner.invoke(main, ["revert", first.short_id])
    assert result.exit_code == 0, result.output
    assert len(read_scene()["objects"]) == 1
    assert graph.current_branch().head_commit_id == second.id


def test_delete_branch_and_clear(runner, project):
    runner.invoke(main, ["commit", "-m", "base"])
    runner.invoke(main, ["branch", "old"])

    result = runner.invoke(main, ["delete-branch", "main"])
    assert result.exit_code != 0

    result = runner.invoke(main, ["delete-branch", "old"])
    assert result.exit_code == 0
    assert "Deleted branch old" in result.output

    result = runner.invoke(main, ["clear"], input="n\n")
    assert "Aborted" in result.output
    assert len(SceneRepository(project).store.get_commits()) == 1

    result = runner.invoke(main, ["clear", "--yes"])
    assert result.exit_code == 0
    assert SceneRepository(project).store.get_commits() == []


def test_sample_command(runner, project):
    result = runner.invoke(main, ["sample"])
    assert result.exit_code == 0, result.output
    assert "Initial layout" in result.output
    assert len(SceneRepository(project).store.get_commits()) == 3
