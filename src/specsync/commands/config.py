"""Config commands -- view and modify global configuration.

Provides the ``specsync config`` sub-command group for reading and updating
the user's global configuration file (:class:`~specsync.models.GlobalConfig`).
Settings stored there are scan defaults; project ``specsync.json`` files,
``SPECSYNC_*`` environment variables and CLI flags override them.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from specsync.exceptions import SpecsyncError
from specsync.exit_codes import EXIT_INVALID_USAGE
from specsync.output import error, get_output, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False,
        "--effective",
        help="Show the merged scan settings (global, project, environment).",
    ),
) -> None:
    """Show current configuration.

    Example::

        specsync config show
        specsync config show --effective --json
    """
    from specsync.config import get_config_dir, load_global_config, resolve_scan_config

    try:
        if effective:
            data = resolve_scan_config().model_dump(mode="json")
        else:
            data = load_global_config().model_dump(mode="json")
    except SpecsyncError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    get_output().print_json(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'scan.concurrency')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the existing field and the result is validated before saving.

    Example::

        specsync config set scan.registry connectors/registry.json
        specsync config set scan.concurrency 4
        specsync config set scan.token_source file:~/.config/gh-token
    """
    from specsync.config import load_global_config, save_global_config
    from specsync.models import GlobalConfig

    try:
        config = load_global_config()
    except SpecsyncError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    coerced = _coerce(target[final_key], value)
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("path")
def config_path() -> None:
    """Print the location of the global config file."""
    from specsync.config import get_config_dir

    get_output().print_data(str(get_config_dir() / "config.json"))


def _coerce(current: Any, value: str) -> Any:
    """Convert *value* to the type of the field's *current* value.

    Numeric strings are left for pydantic to convert so that a bad number
    surfaces as a validation error.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if current is None and value.lower() in ("", "none", "null"):
        return None
    return value
