"""Config management commands.

Shows the effective configuration and writes a default config file.
"""

from typing import Annotated

import tomli_w
import typer

from blinkctl.cli.types import load_cli_config
from blinkctl.core.config import BlinkctlConfig, ConfigError, save_config
from blinkctl.core.paths import get_config_path
from blinkctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or initialize the blinkctl configuration.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Print the effective configuration as TOML."""
    config_path = get_config_path()
    config = load_cli_config()

    if config_path.exists():
        print_info(f"# {config_path}")
    else:
        print_info(f"# {config_path} (not found, showing defaults)")
    text = tomli_w.dumps(config.model_dump(exclude_none=True))
    console.print(text, markup=False, highlight=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with the default settings."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        print_error(f"Config already exists: {config_path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_config(BlinkctlConfig())
    except (ConfigError, RuntimeError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Wrote default config to {saved}")
