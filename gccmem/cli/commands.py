"""CLI commands for gccmem."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from gccmem import __version__, __logo__

app = typer.Typer(
    name="gccmem",
    help=f"{__logo__} gccmem - Git-like Context Commit store",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} gccmem v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """gccmem - Git-like Context Commit store."""
    pass


def _open_store(db: str | None):
    """Open the store named by --db, or the configured one."""
    from gccmem.config.loader import load_config
    from gccmem.memory.store import GccStore

    config = load_config()
    if db:
        config.gcc.db_path = db
    return GccStore.open(config.gcc)


DbOption = typer.Option(None, "--db", help="SQLite database (default: from config)")


# ============================================================================
# History
# ============================================================================


@app.command()
def log(
    category: str = typer.Argument(..., help="Knowledge category"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to read"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum commits to show"),
    db: str = DbOption,
):
    """Show the commit history of a branch."""
    with _open_store(db) as store:
        entries = store.log(category, branch, limit)

    if not entries:
        console.print(f"[yellow]No commits on {category}/{branch}[/yellow]")
        return

    table = Table(title=f"{category}/{branch}")
    table.add_column("Commit", style="cyan")
    table.add_column("Date")
    table.add_column("Confidence")
    table.add_column("Delta", justify="right")
    table.add_column("Message")

    for entry in entries:
        table.add_row(
            entry.hash[:8],
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            entry.confidence,
            f"[green]+{entry.delta_added}[/green] [red]-{entry.delta_removed}[/red]",
            entry.message,
        )

    console.print(table)


@app.command()
def show(
    category: str = typer.Argument(..., help="Knowledge category"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to read"),
    db: str = DbOption,
):
    """Print the head snapshot of a branch as JSON."""
    with _open_store(db) as store:
        snapshot = store.get_head_snapshot(category, branch)

    if snapshot is None:
        console.print(f"[yellow]No commits on {category}/{branch}[/yellow]")
        raise typer.Exit(1)

    console.print_json(json.dumps(snapshot, ensure_ascii=False))


# ============================================================================
# Branches
# ============================================================================


@app.command()
def branches(
    category: str = typer.Argument(..., help="Knowledge category"),
    db: str = DbOption,
):
    """List the branches of a category."""
    with _open_store(db) as store:
        summaries = store.list_branches(category)

    if not summaries:
        console.print(f"[yellow]No branches for {category}[/yellow]")
        return

    table = Table(title=f"Branches of {category}")
    table.add_column("Branch", style="cyan")
    table.add_column("Head")
    table.add_column("Commits", justify="right")
    table.add_column("Created")

    for summary in summaries:
        table.add_row(
            summary.branch_name,
            summary.head_commit_hash[:8] if summary.head_commit_hash else "[dim]empty[/dim]",
            str(summary.commit_count),
            summary.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


@app.command()
def branch(
    category: str = typer.Argument(..., help="Knowledge category"),
    name: str = typer.Argument(..., help="Name of the new branch"),
    from_branch: str = typer.Option("main", "--from", "-f", help="Branch to fork from"),
    db: str = DbOption,
):
    """Create a branch from the head of another."""
    from gccmem.memory.errors import BranchExistsError

    with _open_store(db) as store:
        try:
            created = store.create_branch(category, name, from_branch)
        except BranchExistsError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✓[/green] Created branch {created}")


@app.command("delete-branch")
def delete_branch(
    category: str = typer.Argument(..., help="Knowledge category"),
    name: str = typer.Argument(..., help="Branch to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    db: str = DbOption,
):
    """Delete a branch and the commits created on it."""
    if not yes and not typer.confirm(f"Delete {category}/{name} and its commits?"):
        raise typer.Exit()

    with _open_store(db) as store:
        deleted = store.delete_branch(category, name)

    if not deleted:
        console.print(f"[red]Could not delete {category}/{name}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Deleted {category}/{name}")


# ============================================================================
# Merge / Rollback / Migrate
# ============================================================================


@app.command()
def merge(
    category: str = typer.Argument(..., help="Knowledge category"),
    source: str = typer.Argument(..., help="Branch to merge from"),
    into: str = typer.Option("main", "--into", "-i", help="Branch to merge into"),
    db: str = DbOption,
):
    """Merge one branch into another."""
    with _open_store(db) as store:
        result = store.merge(category, source, into)

    if not result.success:
        console.print(f"[yellow]Nothing to merge: {category}/{source} has no commits[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Merged {source} into {into} as {result.commit_hash[:8]}")

    if result.conflicts:
        table = Table(title="Conflicts (target kept)")
        table.add_column("Field", style="cyan")
        table.add_column("Source")
        table.add_column("Target")
        for conflict in result.conflicts:
            table.add_row(
                conflict.field,
                ", ".join(str(v) for v in conflict.source_values),
                ", ".join(str(v) for v in conflict.target_values),
            )
        console.print(table)


@app.command()
def rollback(
    category: str = typer.Argument(..., help="Knowledge category"),
    commit_hash: str = typer.Argument(..., help="Commit to restore"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to roll back"),
    db: str = DbOption,
):
    """Restore an earlier snapshot as a new commit."""
    with _open_store(db) as store:
        commit = store.rollback(category, commit_hash, branch)

    if commit is None:
        console.print(f"[red]No commit {commit_hash} in {category}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {commit}")


@app.command()
def migrate(
    category: str = typer.Argument(..., help="Knowledge category"),
    file: Path = typer.Argument(..., help="JSON file with the legacy object"),
    force: bool = typer.Option(False, "--force", help="Migrate even if history exists"),
    db: str = DbOption,
):
    """Import a legacy JSON object as a commit on main."""
    from gccmem.memory.errors import InvalidSnapshotError

    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading {file}: {e}[/red]")
        raise typer.Exit(1)

    with _open_store(db) as store:
        try:
            if force:
                commit = store.migrate_from_legacy(category, data)
            else:
                commit = store.migrate_if_empty(category, data)
        except InvalidSnapshotError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    if commit is None:
        console.print(f"[yellow]{category} already has history, use --force to migrate anyway[/yellow]")
        return

    console.print(f"[green]✓[/green] {commit}")


if __name__ == "__main__":
    app()
