"""CLI commands for configuration management."""

import json
import shutil
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from goal_audit.core.config import ConfigManager

console = Console()
error_console = Console(stderr=True)


def _config_manager(ctx: click.Context) -> ConfigManager:
    """Use the manager loaded by the top-level group, or the default one."""
    obj = ctx.find_object(dict) or {}
    config_mgr = obj.get("config")
    return config_mgr if config_mgr is not None else ConfigManager()


def convert_value(value: str) -> Any:
    """Convert a command-line string to a config value.

    'true'/'false'/'yes'/'no' become booleans, 'null' becomes None, integers
    become ints. Everything else stays a string.
    """
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if lowered == "null":
        return None
    try:
        return int(value)
    except ValueError:
        return value


@click.group()
def config() -> None:
    """Manage Goal Audit configuration.

    Configuration is stored in ~/.goal-audit/config.yml
    """
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show all configuration settings.

    Example:
        goal-audit config show
        goal-audit config show --json
    """
    config_mgr = _config_manager(ctx)

    if as_json:
        print(json.dumps(config_mgr.to_dict(), indent=2))
        return

    table = Table(title="Goal Audit Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key in config_mgr.get_all_keys():
        table.add_row(key, str(config_mgr.get(key)))

    console.print(table)
    console.print(f"\nConfig file: {config_mgr.config_path}")


@config.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Get a specific configuration value.

    Example:
        goal-audit config get idle.timeout
    """
    value = _config_manager(ctx).get(key)

    if value is None:
        error_console.print(f"[red]Error:[/red] Configuration key '{key}' not found")
        sys.exit(1)

    if isinstance(value, dict):
        console.print(json.dumps(value, indent=2))
    else:
        console.print(str(value))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    Use 'true'/'false' for booleans, numbers for integers, 'null' to clear.

    Example:
        goal-audit config set idle.timeout 600
        goal-audit config set display.category Work
    """
    converted_value = convert_value(value)

    try:
        _config_manager(ctx).set(key, converted_value)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Set {key} = {converted_value}")


@config.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def config_reset(ctx: click.Context, yes: bool) -> None:
    """Reset configuration to defaults.

    Example:
        goal-audit config reset --yes
    """
    config_mgr = _config_manager(ctx)

    if not yes:
        console.print("[yellow]Warning:[/yellow] This will reset all configuration to defaults.")
        if not click.confirm("Continue?"):
            console.print("Cancelled")
            return

    backup_path = config_mgr.config_path.with_suffix(".yml.backup")
    if config_mgr.config_path.exists():
        shutil.copy(config_mgr.config_path, backup_path)
        console.print(f"Backed up current config to {backup_path}")

    config_mgr.reset()
    console.print("[green]✓[/green] Configuration reset to defaults")


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Show path to configuration file."""
    console.print(str(_config_manager(ctx).config_path))
