"""CLI interface for retryflow"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import yaml

from retryflow.application.executor import RetryExecutor
from retryflow.domain.config import RetryConfiguration
from retryflow.domain.errors import CommandFailedError
from retryflow.infrastructure.command import command_operation, exit_code_predicate
from retryflow.infrastructure.config.config_manager import ConfigManager
from retryflow.infrastructure.retry import log_retry

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    for logger_name in logging.Logger.manager.loggerDict:
        logging.getLogger(logger_name).setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _build_retry_config(
    config_manager: ConfigManager,
    overrides: Dict[str, Any],
    retry_exit_codes: Tuple[int, ...],
) -> RetryConfiguration:
    """Combine file/env configuration with CLI options

    Args:
        config_manager: Configuration manager
        overrides: Retry fields given on the command line (None = not given)
        retry_exit_codes: Exit codes from --retry-on-exit-code (empty = use config)

    Returns:
        Retry configuration with logging and exit-code hooks installed
    """
    base = config_manager.get_retry_config()
    command_config = config_manager.get_command_config()

    given = {key: value for key, value in overrides.items() if value is not None}
    exit_codes = list(retry_exit_codes) or command_config.retry_exit_codes

    config = base.merged(**given)
    return config.merged(
        on_retry=log_retry(logger, logging.WARNING, max_attempts=config.max_attempts),
        should_retry=exit_code_predicate(exit_codes),
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .retryflow.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """retryflow - retry commands and async operations with backoff"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--retries", "-r", type=int, help="Maximum retries after the first attempt. Overrides config.")
@click.option("--delay", "-d", type=float, help="Base delay between attempts in ms. Overrides config.")
@click.option("--backoff/--no-backoff", default=None, help="Double the delay after each failure.")
@click.option("--jitter/--no-jitter", default=None, help="Randomize each delay by +/-20%.")
@click.option("--max-delay", type=float, help="Upper bound for the delay in ms (before jitter).")
@click.option("--timeout", "-t", type=float, help="Per-attempt timeout in ms.")
@click.option(
    "--retry-on-exit-code",
    "retry_exit_codes",
    type=int,
    multiple=True,
    help="Only retry on this exit code (repeatable). Default: any non-zero code.",
)
@click.pass_context
def run(
    ctx,
    command: Tuple[str, ...],
    retries: Optional[int],
    delay: Optional[float],
    backoff: Optional[bool],
    jitter: Optional[bool],
    max_delay: Optional[float],
    timeout: Optional[float],
    retry_exit_codes: Tuple[int, ...],
):
    """Run a command, retrying it while it fails.

    COMMAND: Program and arguments, e.g. retryflow run -r 5 -- curl -f URL
    """
    verbose = ctx.obj.get("verbose", False)
    exit_code = 0

    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
        retry_config = _build_retry_config(
            config_manager,
            {
                "retries": retries,
                "delay": delay,
                "backoff": backoff,
                "jitter": jitter,
                "max_delay": max_delay,
                "timeout": timeout,
            },
            retry_exit_codes,
        )
        command_config = config_manager.get_command_config()
        logger.info(f"Running {' '.join(command)} (up to {retry_config.max_attempts} attempts)")

        # The command layer owns the deadline so timed-out processes are stopped in-attempt
        executor = RetryExecutor(retry_config.merged(timeout=None))
        operation = command_operation(command, command_config.kill_grace_period, retry_config.timeout)
        asyncio.run(executor.execute(operation))
        logger.info("Command succeeded")

    except CommandFailedError as e:
        logger.error(str(e))
        exit_code = e.returncode
    except FileNotFoundError as e:
        _die(f"Command not found: {command[0]}", verbose=verbose, exc=e)
    except click.ClickException:
        raise
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    ctx.exit(exit_code)


@cli.command("show-config")
@click.pass_context
def show_config(ctx):
    """Print the effective configuration as YAML."""
    verbose = ctx.obj.get("verbose", False)
    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except Exception as e:
        _die(str(e), verbose=verbose, exc=e)

    click.echo(yaml.safe_dump(config_manager.as_dict(), sort_keys=False))


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
