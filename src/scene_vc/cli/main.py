"""Command line interface for scene-vc."""

import contextlib
import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scene_vc import __version__
from scene_vc.core.repository import SceneRepository
from scene_vc.errors import SceneVCError
from scene_vc.log import setup_logging
from scene_vc.models.commit import Commit, ConflictResolution, ResolutionChoice
from scene_vc.utils.dates import format_distance_to_now

console = Console()


@contextlib.contextmanager
def handle_errors() -> Iterator[None]:
    """Turn engine errors into a red message and a non-zero exit."""
    try:
        yield
    except SceneVCError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


def get_repo_or_exit(ctx: click.Context) -> SceneRepository:
    """Find the repository for the working directory or abort."""
    repo = SceneRepository.find(Path.cwd())
    if repo is None:
        console.print("[red]scene-vc not initialized. Run 'scene-vc init' first.[/red]")
        raise click.Abort()
    with handle_errors():
        verbose = ctx.obj.get("verbose", False) if ctx.obj else False
        setup_logging(
            repo.config.log_level,
            log_file=repo.log_file,
            console_level=logging.DEBUG if verbose else logging.WARNING,
        )
    return repo


def _commit_line(commit: Commit) -> str:
    when = format_distance_to_now(commit.timestamp, add_suffix=True)
    tags = f" [magenta]({escape(', '.join(commit.tags))})[/magenta]" if commit.tags else ""
    return f"[yellow]{commit.short_id}[/yellow] {escape(commit.message)}{tags} [dim]{when}[/dim]"


@click.group()
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """scene-vc - Git-style version control for vector scenes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.option(
    "--project-path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Path to project directory",
)
@click.option(
    "--store",
    type=click.Choice(["git", "json"]),
    default="git",
    help="Backing store for commits and branches",
)
@click.option("--scene-file", default="scene.json", help="Scene document to track")
def init(project_path: str, store: str, scene_file: str):
    """Initialize scene-vc in a project."""
    repo = SceneRepository(Path(project_path))
    with handle_errors():
        repo.init(store=store, scene_file=scene_file)
    console.print(f"[green]Initialized scene-vc in {repo.project_root}[/green]")


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the active branch and scene state."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        branch = graph.current_branch()
        commits = graph.commit_history()
        object_count = repo.scene.object_count()

    console.print(f"[bold]Project:[/bold] {repo.project_root}")
    console.print(f"[bold]Branch:[/bold] {branch.name}")
    head = branch.head_commit_id[-8:] if branch.has_commits else "(no commits)"
    console.print(f"[bold]Head:[/bold] {head}")
    console.print(f"[bold]Commits:[/bold] {len(commits)}")
    console.print(f"[bold]Objects in scene:[/bold] {object_count}")


@main.command()
@click.option("--message", "-m", required=True, help="Commit message")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag to attach (repeatable)")
@click.pass_context
def commit(ctx: click.Context, message: str, tags: Tuple[str, ...]):
    """Commit the current scene on the active branch."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        new_commit = graph.create_commit(message, tags)
        branch = graph.current_branch()

    summary = new_commit.change_summary
    console.print(
        f"[green]\\[{branch.name} {new_commit.short_id}][/green] {escape(new_commit.message)}"
    )
    console.print(
        f"  {summary.added} added, {summary.modified} modified, {summary.deleted} deleted"
    )


@main.command()
@click.option("--limit", default=10, help="Number of commits to show")
@click.option("--branch", "branch_ref", default=None, help="Only commits reachable from a branch")
@click.option("--oneline", is_flag=True, help="Show compact one-line format")
@click.pass_context
def log(ctx: click.Context, limit: int, branch_ref: Optional[str], oneline: bool):
    """Show commit history, newest first."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        if branch_ref:
            commits = graph.branch_history(graph.resolve_branch(branch_ref).id)
        else:
            commits = graph.commit_history()

    if not commits:
        console.print("[yellow]No commits yet.[/yellow]")
        return

    for entry in commits[:limit]:
        if oneline:
            console.print(_commit_line(entry))
            continue
        parents = ", ".join(p[-8:] for p in entry.parent_ids) or "root"
        summary = entry.change_summary
        body = "\n".join(
            [
                f"[bold]{escape(entry.message)}[/bold]",
                f"Author: {entry.author.name} ({entry.author.initials})",
                f"Parents: {parents}",
                f"Changes: +{summary.added} ~{summary.modified} -{summary.deleted}",
            ]
            + [f"  {detail}" for detail in summary.details]
        )
        title = f"{entry.id} - {format_distance_to_now(entry.timestamp, add_suffix=True)}"
        console.print(Panel(body, title=title, expand=False))


@main.command()
@click.argument("name", required=False)
@click.option("--from", "from_commit", default=None, help="Commit to start the branch at")
@click.pass_context
def branch(ctx: click.Context, name: Optional[str], from_commit: Optional[str]):
    """List branches, or create NAME."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        if name:
            commit_id = graph.resolve_commit(from_commit).id if from_commit else None
            created = graph.create_branch(name, commit_id)
            console.print(f"[green]Created branch {created.name}[/green]")
            return
        branches = graph.list_branches()
        active = graph.active_branch_id()

    table = Table(title="Branches")
    table.add_column("", style="green", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Head", style="yellow")
    table.add_column("Created", style="magenta")
    table.add_column("By", style="blue")
    for entry in branches:
        table.add_row(
            "*" if entry.id == active else "",
            entry.name,
            entry.head_commit_id[-8:] or "-",
            format_distance_to_now(entry.created_at, add_suffix=True),
            entry.created_by,
        )
    console.print(table)


@main.command()
@click.argument("branch_ref")
@click.pass_context
def switch(ctx: click.Context, branch_ref: str):
    """Switch to a branch and load its head into the scene."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        target = graph.switch_branch(graph.resolve_branch(branch_ref).id)
    console.print(f"[green]Switched to branch {target.name}[/green]")


@main.command()
@click.argument("commit_ref")
@click.pass_context
def revert(ctx: click.Context, commit_ref: str):
    """Load a commit's snapshot into the scene without moving any branch."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        target = graph.revert_to_commit(graph.resolve_commit(commit_ref).id)
    console.print(f"[green]Scene reverted to {target.short_id}: {escape(target.message)}[/green]")


@main.command("delete-branch")
@click.argument("branch_ref")
@click.pass_context
def delete_branch(ctx: click.Context, branch_ref: str):
    """Delete a branch pointer. Commits are kept."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        removed = graph.delete_branch(graph.resolve_branch(branch_ref).id)
    console.print(f"[green]Deleted branch {removed.name}[/green]")


@main.command()
@click.argument("branch_a")
@click.argument("branch_b")
@click.option("--json", "as_json", is_flag=True, help="Print conflicts as JSON")
@click.pass_context
def conflicts(ctx: click.Context, branch_a: str, branch_b: str, as_json: bool):
    """Show conflicts between the heads of BRANCH_A and BRANCH_B."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        found = graph.detect_conflicts(
            graph.resolve_branch(branch_a).id, graph.resolve_branch(branch_b).id
        )

    if as_json:
        click.echo(
            json.dumps([c.model_dump(mode="json", by_alias=True) for c in found], indent=2)
        )
        return
    if not found:
        console.print("[green]No conflicts.[/green]")
        return

    table = Table(title=f"Conflicts: {branch_a} vs {branch_b}")
    table.add_column("Object", style="cyan")
    table.add_column("Type", style="blue")
    table.add_column("Conflict", style="red")
    table.add_column(branch_a, style="green")
    table.add_column(branch_b, style="yellow")
    for conflict in found:
        table.add_row(
            conflict.object_id,
            conflict.object_type,
            conflict.conflict_type.value,
            escape(json.dumps(conflict.branch_a.value)),
            escape(json.dumps(conflict.branch_b.value)),
        )
    console.print(table)


def _parse_manual(values: Tuple[str, ...]) -> List[ConflictResolution]:
    resolutions = []
    for raw in values:
        object_id, sep, payload = raw.partition("=")
        if not sep:
            raise click.BadParameter(f"expected ID=JSON, got {raw!r}", param_hint="--manual")
        try:
            value = json.loads(payload)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON for {object_id}: {e}", param_hint="--manual") from e
        if not isinstance(value, dict):
            raise click.BadParameter(f"value for {object_id} must be an object", param_hint="--manual")
        resolutions.append(
            ConflictResolution(object_id=object_id, resolution=ResolutionChoice.MANUAL, value=value)
        )
    return resolutions


@main.command()
@click.argument("branch_a")
@click.argument("branch_b")
@click.option("--keep-a", multiple=True, help="Object id to keep from BRANCH_A")
@click.option("--keep-b", multiple=True, help="Object id to take from BRANCH_B")
@click.option("--manual", multiple=True, help="ID=JSON properties to apply to an object")
@click.pass_context
def merge(
    ctx: click.Context,
    branch_a: str,
    branch_b: str,
    keep_a: Tuple[str, ...],
    keep_b: Tuple[str, ...],
    manual: Tuple[str, ...],
):
    """Merge BRANCH_B into BRANCH_A. Unresolved objects keep BRANCH_A's version."""
    repo = get_repo_or_exit(ctx)
    resolutions = [
        ConflictResolution(object_id=oid, resolution=ResolutionChoice.KEEP_A) for oid in keep_a
    ]
    resolutions += [
        ConflictResolution(object_id=oid, resolution=ResolutionChoice.KEEP_B) for oid in keep_b
    ]
    resolutions += _parse_manual(manual)

    with handle_errors():
        graph = repo.open_graph()
        target = graph.resolve_branch(branch_a)
        source = graph.resolve_branch(branch_b)
        merge_commit = repo.resolver(graph).merge(target.id, source.id, resolutions)

    console.print(
        f"[green]\\[{target.name} {merge_commit.short_id}][/green] {escape(merge_commit.message)}"
    )
    console.print(f"  {len(resolutions)} resolutions recorded")


@main.command()
@click.argument("commit_a")
@click.argument("commit_b")
@click.pass_context
def compare(ctx: click.Context, commit_a: str, commit_b: str):
    """Show objects added, modified or deleted from COMMIT_A to COMMIT_B."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        graph = repo.open_graph()
        diff = graph.compare_commits(
            graph.resolve_commit(commit_a).id, graph.resolve_commit(commit_b).id
        )

    if diff.is_empty:
        console.print("[green]Snapshots are identical.[/green]")
        return
    for label, ids, style in (
        ("Added", diff.added, "green"),
        ("Modified", diff.modified, "yellow"),
        ("Deleted", diff.deleted, "red"),
    ):
        for object_id in ids:
            console.print(f"[{style}]{label}:[/{style}] {object_id}")


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool):
    """Delete all commits and branches."""
    repo = get_repo_or_exit(ctx)
    if not yes and not click.confirm(
        "Clear all version control data? This cannot be undone.", default=False
    ):
        console.print("[yellow]Aborted.[/yellow]")
        return
    with handle_errors():
        repo.open_graph().clear_all_data()
    console.print("[green]All version control data cleared.[/green]")


@main.command()
@click.pass_context
def sample(ctx: click.Context):
    """Seed an empty repository with sample commits."""
    repo = get_repo_or_exit(ctx)
    with handle_errors():
        created = repo.open_graph().create_sample_data()
    for entry in created:
        console.print(_commit_line(entry))


if __name__ == "__main__":
    main()
