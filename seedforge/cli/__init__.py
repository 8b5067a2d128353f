"""
SeedForge CLI.

Command-line interface for seeding, batch runs, and inspecting targets.
"""

import logging

import click

from seedforge import __version__
from seedforge.cli.backups import backups


def configure_logging(level: str) -> None:
    """Route library logging through rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, markup=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    help="Logging verbosity",
)
def main(log_level: str) -> None:
    """SeedForge: Version-aware seeding of persistent directories."""
    configure_logging(log_level)


@main.command()
@click.argument("source", type=click.Path(file_okay=False))
@click.argument("target", type=click.Path(file_okay=False))
@click.option(
    "--version", "-v", "version",
    envvar="SEED_IMAGE_VERSION",
    help="Vendor version (defaults to release file, then fingerprint)",
)
@click.option("--release-file", type=click.Path(dir_okay=False), help="KEY=value release file")
@click.option("--release-key", default="REL_VSN", show_default=True, help="Release file key")
@click.option("--version-prefix", default="", help="Prefix for release-file versions")
@click.option("--backup-prefix", default="pre_upgrade", show_default=True, help="Snapshot name prefix")
@click.option("--dry-run", is_flag=True, help="Show what would happen without writing")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON")
def seed(
    source: str,
    target: str,
    version: str | None,
    release_file: str | None,
    release_key: str,
    version_prefix: str,
    backup_prefix: str,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Seed or refresh TARGET from the vendor defaults in SOURCE."""
    from pathlib import Path

    from seedforge.core.json_canonical import canonical_json_dumps
    from seedforge.core.version import resolve_version
    from seedforge.reconcile.driver import ReconcileAction, plan_reconcile, reconcile

    source_path = Path(source)
    target_path = Path(target)

    resolved = resolve_version(
        source_path,
        explicit=version,
        release_file=Path(release_file) if release_file else None,
        release_key=release_key,
        prefix=version_prefix,
    )

    if dry_run:
        plan = plan_reconcile(
            source_path, target_path, resolved.value, backup_prefix=backup_prefix
        )
        if as_json:
            click.echo(canonical_json_dumps(plan.to_dict(), indent=True))
        else:
            _print_plan(plan)
        if plan.action is ReconcileAction.FAIL:
            raise SystemExit(1)
        return

    result = reconcile(source_path, target_path, resolved.value, backup_prefix=backup_prefix)
    if as_json:
        click.echo(canonical_json_dumps(result.to_dict(), indent=True))
    else:
        click.echo(f"{result.action.value}: {target_path} (version: {result.version})")
        if result.backup_path:
            click.echo(f"Backup: {result.backup_path}")
        for failure in result.report.failures:
            click.echo(f"  ! {failure}", err=True)

    if not result:
        click.echo(f"Error: {result.message}", err=True)
        raise SystemExit(1)


def _print_plan(plan) -> None:
    """Render a dry-run plan."""
    click.echo(f"Action: {plan.action.value} ({plan.reason})")
    click.echo(f"Source: {plan.source}")
    click.echo(f"Target: {plan.target}")
    if plan.version is not None:
        click.echo(f"Version: {plan.previous_version or '(none)'} -> {plan.version}")
    if plan.edits is not None:
        for path in sorted(plan.edits.modified):
            click.echo(f"  ~ keep modified: {path}")
        for path in sorted(plan.edits.added):
            click.echo(f"  + keep added: {path}")
        for path in sorted(plan.edits.deleted):
            click.echo(f"  - stays deleted: {path}")
    for path in plan.stale_paths:
        click.echo(f"  = retained, no longer shipped: {path}")
    if plan.backup_path is not None:
        click.echo(f"Backup would be written to: {plan.backup_path}")


@main.command()
@click.argument("config", type=click.Path(exists=True, dir_okay=False))
@click.option("--only", multiple=True, help="Reconcile only the named target(s)")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON")
def run(config: str, only: tuple[str, ...], as_json: bool) -> None:
    """Reconcile every target listed in a YAML CONFIG."""
    from pathlib import Path

    from rich.console import Console
    from rich.table import Table

    from seedforge.config import ConfigError, SeedConfig
    from seedforge.core.json_canonical import canonical_json_dumps
    from seedforge.reconcile.batch import run_batch

    try:
        seed_config = SeedConfig.from_yaml(Path(config))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if only:
        unknown = [name for name in only if seed_config.get_target(name) is None]
        if unknown:
            click.echo(f"Error: unknown target(s): {', '.join(unknown)}", err=True)
            raise SystemExit(1)
        seed_config = seed_config.model_copy(
            update={"targets": [t for t in seed_config.targets if t.name in only]}
        )

    batch = run_batch(seed_config)

    if as_json:
        click.echo(canonical_json_dumps(batch.to_dict(), indent=True))
    else:
        table = Table(title="Seed Results")
        table.add_column("Target", style="cyan")
        table.add_column("Action")
        table.add_column("Version")
        table.add_column("Edits kept", justify="right")
        table.add_column("Backup")
        for outcome in batch.outcomes:
            result = outcome.result
            kept = len(result.edits.preserved) if result.edits else 0
            action = result.action.value if result.success else f"[red]{result.action.value}[/red]"
            table.add_row(
                outcome.name,
                action,
                result.version or "-",
                str(kept),
                str(result.backup_path) if result.backup_path else "-",
            )
        Console().print(table)

    if not batch:
        raise SystemExit(1)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def manifest(directory: str, as_json: bool) -> None:
    """Print the content-hash manifest of DIRECTORY."""
    from pathlib import Path

    from seedforge.core.json_canonical import canonical_json_dumps
    from seedforge.core.manifest.tree_manifest import generate_manifest

    tree = generate_manifest(Path(directory))
    if as_json:
        click.echo(canonical_json_dumps(tree.entries, indent=True))
    else:
        click.echo(tree.to_text(), nl=False)


@main.command()
@click.argument("directory", type=click.Path(file_okay=False))
def fingerprint(directory: str) -> None:
    """Print the name/size fingerprint of DIRECTORY."""
    from pathlib import Path

    from seedforge.core.fingerprint import fingerprint_dir

    click.echo(fingerprint_dir(Path(directory)))


@main.command()
@click.argument("target", type=click.Path(file_okay=False))
@click.option("--source", type=click.Path(file_okay=False), help="Vendor source to plan against")
@click.option("--version", "-v", "version", envvar="SEED_IMAGE_VERSION", help="Vendor version for the plan")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def status(target: str, source: str | None, version: str | None, as_json: bool) -> None:
    """Show the seeding state and pending user edits of TARGET."""
    from pathlib import Path

    from seedforge.core.json_canonical import canonical_json_dumps
    from seedforge.core.manifest.hash import compute_manifest_hash
    from seedforge.core.manifest.tree_manifest import generate_manifest
    from seedforge.reconcile.classifier import diff_manifests
    from seedforge.reconcile.driver import SeedState, inspect_target, plan_reconcile

    target_path = Path(target)
    state = inspect_target(target_path)
    edits = None
    if state.state is SeedState.SEEDED:
        edits = diff_manifests(generate_manifest(target_path), state.manifest)

    plan = None
    if source is not None:
        plan = plan_reconcile(Path(source), target_path, version)

    if as_json:
        data = state.to_dict()
        data["edits"] = edits.to_dict() if edits else None
        data["plan"] = plan.to_dict() if plan else None
        data["manifest_hash"] = (
            compute_manifest_hash(state.manifest) if state.manifest is not None else None
        )
        click.echo(canonical_json_dumps(data, indent=True))
        return

    click.echo(f"Target: {target_path}")
    click.echo(f"State: {state.state.value}")
    click.echo(f"Version: {state.stamp or '(none)'}")
    if state.manifest is not None:
        click.echo(
            f"Manifest: {len(state.manifest)} entries "
            f"(hash {compute_manifest_hash(state.manifest)[:8]}...)"
        )
    elif state.manifest_corrupt:
        click.echo("Manifest: corrupt (all files would be preserved on refresh)")
    else:
        click.echo("Manifest: (none)")

    if edits is not None:
        if edits.is_empty:
            click.echo("No user edits.")
        for path in sorted(edits.modified):
            click.echo(f"  ~ {path}")
        for path in sorted(edits.added):
            click.echo(f"  + {path}")
        for path in sorted(edits.deleted):
            click.echo(f"  - {path}")

    if plan is not None:
        click.echo(f"Next run: {plan.action.value} (version {plan.version}, {plan.reason})")
        for path in plan.stale_paths:
            click.echo(f"  = no longer shipped: {path}")


main.add_command(backups)


if __name__ == "__main__":
    main()
