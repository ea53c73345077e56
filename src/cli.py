#!/usr/bin/env python3
"""
CLI tool for the Dokploy reconcilers.

Runs exactly one lifecycle pass (create, read, update, delete or import)
against a desired-state file and prints the reconciled state. It does not
diff or plan; that is the orchestrator's job.
"""

import asyncio
import json
import logging

import click
import yaml
from tabulate import tabulate

from config import LoggingConfig, get_config
from errors import ReconcileError
from plugins.reconcilers.base import ReconcilerContext, ReconcileResult
from plugins.registry import get_registry, register_builtin_plugins
from validation import validate_desired_state

logger = logging.getLogger(__name__)

MASK = "(sensitive)"


def _load_file(filename):
    """Read a YAML or JSON file into a dict."""
    with open(filename, "r") as f:
        if filename.endswith(".yaml") or filename.endswith(".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if not isinstance(data, dict):
        raise click.ClickException(f"{filename} must contain a mapping")
    return data


def _get_reconciler(resource_type):
    reconciler = get_registry().get_reconciler_for_resource_type(resource_type)
    if reconciler is None:
        available = ", ".join(get_registry().list_resource_types())
        raise click.ClickException(
            f"Unknown resource type: {resource_type}. Available types: {available}"
        )
    return reconciler


def _load_desired(reconciler, filename):
    data = _load_file(filename)
    is_valid, error = validate_desired_state(data, reconciler.schema)
    if not is_valid:
        raise click.ClickException(f"Invalid {reconciler.schema.type_name}: {error}")
    return reconciler.state_from_dict(data)


def _run(reconciler, operation, *args) -> ReconcileResult:
    """Run one reconciler coroutine against the configured Dokploy host."""
    try:
        ctx = ReconcilerContext.from_config(get_config().dokploy)
        return asyncio.run(getattr(reconciler, operation)(*args, ctx))
    except (ReconcileError, ValueError) as e:
        raise click.ClickException(str(e))


def _echo_state(reconciler, state, output, show_sensitive):
    data = state.to_dict()
    if not show_sensitive:
        for name in reconciler.schema.sensitive_fields:
            if data.get(name) is not None:
                data[name] = MASK

    if output == "yaml":
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
    else:
        click.echo(json.dumps(data, indent=2))


def _finish(reconciler, result, out, output, show_sensitive):
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if result.removed:
        click.echo("Resource no longer exists remotely; drop it from state.")
        return

    if out:
        with open(out, "w") as f:
            json.dump(result.state.to_dict(), f, indent=2)
        click.echo(f"State written to {out}", err=True)

    _echo_state(reconciler, result.state, output, show_sensitive)


output_option = click.option(
    "--output", "-o", type=click.Choice(["json", "yaml"]), default="json"
)
out_option = click.option(
    "--out", type=click.Path(dir_okay=False), help="Write the reconciled state here"
)
sensitive_option = click.option(
    "--show-sensitive", is_flag=True, help="Print sensitive values unmasked"
)


@click.group()
def cli():
    """Dokploy reconcilers - run one lifecycle pass for a resource"""
    log_config = LoggingConfig.from_env()
    logging.basicConfig(level=log_config.level, format=log_config.format)
    register_builtin_plugins()


@cli.command("types")
def list_types():
    """List the resource types that have a reconciler"""
    registry = get_registry()
    rows = []
    for name in registry.list_reconciler_plugins():
        info = registry.get_reconciler_plugin_info(name)
        rows.append([name, ", ".join(info["resource_types"])])
    click.echo(tabulate(rows, headers=["Reconciler", "Resource types"], tablefmt="grid"))


@cli.command()
@click.argument("resource_type")
def schema(resource_type):
    """Show the attribute table of a resource type"""
    reconciler = _get_reconciler(resource_type)
    rows = []
    for f in reconciler.schema.fields:
        rows.append(
            [
                f.name,
                f.kind,
                "required" if f.required else "optional",
                "✓" if f.computed else "",
                "✓" if f.sensitive else "",
                "✓" if f.requires_replace else "",
                "" if f.default is None else json.dumps(f.default),
            ]
        )
    headers = ["Field", "Kind", "Presence", "Computed", "Sensitive", "Replace", "Default"]
    click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


@cli.command()
@click.argument("resource_type")
@click.option("--file", "-f", "filename", required=True, type=click.Path(exists=True))
@out_option
@output_option
@sensitive_option
def create(resource_type, filename, out, output, show_sensitive):
    """Create a resource from a YAML/JSON desired-state file"""
    reconciler = _get_reconciler(resource_type)
    desired = _load_desired(reconciler, filename)
    result = _run(reconciler, "create", desired)
    _finish(reconciler, result, out, output, show_sensitive)


@cli.command()
@click.argument("resource_type")
@click.option("--state", "-s", "state_file", required=True, type=click.Path(exists=True))
@out_option
@output_option
@sensitive_option
def read(resource_type, state_file, out, output, show_sensitive):
    """Refresh a tracked state file from Dokploy"""
    reconciler = _get_reconciler(resource_type)
    state = reconciler.state_from_dict(_load_file(state_file))
    result = _run(reconciler, "read", state)
    _finish(reconciler, result, out, output, show_sensitive)


@cli.command()
@click.argument("resource_type")
@click.option("--file", "-f", "filename", required=True, type=click.Path(exists=True))
@click.option("--state", "-s", "state_file", required=True, type=click.Path(exists=True))
@out_option
@output_option
@sensitive_option
def update(resource_type, filename, state_file, out, output, show_sensitive):
    """Update a tracked resource in place from a desired-state file"""
    reconciler = _get_reconciler(resource_type)
    plan = _load_desired(reconciler, filename)
    prior = reconciler.state_from_dict(_load_file(state_file))
    result = _run(reconciler, "update", plan, prior)
    _finish(reconciler, result, out, output, show_sensitive)


@cli.command()
@click.argument("resource_type")
@click.option("--state", "-s", "state_file", required=True, type=click.Path(exists=True))
@click.confirmation_option(prompt="Are you sure you want to delete this resource?")
def delete(resource_type, state_file):
    """Delete a tracked resource"""
    reconciler = _get_reconciler(resource_type)
    state = reconciler.state_from_dict(_load_file(state_file))
    result = _run(reconciler, "delete", state)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    click.echo("Resource deleted")


@cli.command("import")
@click.argument("resource_type")
@click.argument("external_id")
@out_option
def import_resource(resource_type, external_id, out):
    """Seed a state file from an existing resource id"""
    reconciler = _get_reconciler(resource_type)
    state = reconciler.import_state(external_id)
    data = state.to_dict()

    if out:
        with open(out, "w") as f:
            json.dump(data, f, indent=2)
        click.echo(f"State written to {out}; run 'read' to populate it", err=True)

    click.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    cli()
