"""
Backup CLI commands.

List pre-refresh snapshots of a target and compare one against the live tree.
Snapshots are never deleted by SeedForge; removing them is left to the operator.
"""

import click

from seedforge.reconcile.backup import DEFAULT_BACKUP_PREFIX


@click.group("backups")
def backups() -> None:
    """Inspect pre-refresh snapshots."""
    pass


@backups.command("list")
@click.argument("target", type=click.Path(file_okay=False))
@click.option("--prefix", default=DEFAULT_BACKUP_PREFIX, show_default=True, help="Snapshot prefix")
def list_snapshots(target: str, prefix: str) -> None:
    """List snapshots of TARGET, oldest first."""
    from pathlib import Path

    from rich.console import Console
    from rich.table import Table

    from seedforge.core.sidecars import read_stamp
    from seedforge.reconcile.backup import list_backups

    records = list_backups(Path(target), prefix)
    if not records:
        click.echo(f"No snapshots found for {target}")
        return

    table = Table(title=f"Snapshots of {target}")
    table.add_column("Path", style="cyan")
    table.add_column("Created (UTC)")
    table.add_column("Version")

    for record in records:
        table.add_row(
            str(record.path),
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            read_stamp(record.path) or "-",
        )

    Console().print(table)


@backups.command("diff")
@click.argument("target", type=click.Path(exists=True, file_okay=False))
@click.argument("snapshot", type=click.Path(exists=True, file_okay=False))
def diff_snapshot(target: str, snapshot: str) -> None:
    """Compare SNAPSHOT against the live TARGET."""
    from pathlib import Path

    from seedforge.core.manifest.tree_manifest import generate_manifest

    live = generate_manifest(Path(target))
    saved = generate_manifest(Path(snapshot))

    added = live.paths - saved.paths
    removed = saved.paths - live.paths
    changed = {p for p in live.paths & saved.paths if live.get(p) != saved.get(p)}

    if not (added or removed or changed):
        click.echo("Snapshot matches target")
        return

    for path in sorted(changed):
        click.echo(f"~ {path}")
    for path in sorted(added):
        click.echo(f"+ {path}")
    for path in sorted(removed):
        click.echo(f"- {path}")
