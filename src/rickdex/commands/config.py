"""Config commands -- view and modify global configuration.

Provides the ``rickdex config`` sub-command group for reading, updating
and resetting the user's global configuration file
(:class:`~rickdex.models.GlobalConfig`): API base URL, request timeout
and retries, output format and store directory.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from rickdex.exceptions import ConfigError
from rickdex.exit_codes import EXIT_INVALID_USAGE
from rickdex.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str, key: str) -> Any:
    """Convert *value* to the type of the field's *current* value."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"Expected integer for {key}, got: {value}") from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"Expected number for {key}, got: {value}") from None
    return value


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        rickdex config show
        rickdex config show --json
    """
    from rickdex.config import get_config_dir, load_global_config

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the
    existing field's type and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        rickdex config set base_url http://localhost:8080/api
        rickdex config set request.max_retries 0
        rickdex config set store.directory ~/rickdex-store
    """
    from rickdex.config import load_global_config, save_global_config
    from rickdex.models import GlobalConfig

    config = load_global_config()
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

    try:
        coerced = _coerce(target[final_key], value, key)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        rickdex config reset --force
    """
    from rickdex.config import save_global_config
    from rickdex.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
