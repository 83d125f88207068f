"""
tzcli - Tezos command-line client.

Subcommands:
  - transfer            move funds between accounts
  - forgeBatchTransfer  forge and sign a batch transfer (no injection)
  - extract             derive the public key hash of a secret key
  - inject              inject a signed operation

Global options:
  -v, --version          Print the version and exit
  --verbose              Debug logging on stderr

Examples:
  tzcli transfer -n https://rpc.tzbeta.net -f edsk... -t tz1... -a 1000 -p 1420
  tzcli forgeBatchTransfer -n ... -f edsk... -r tz1...@1000 -r tz1...@2500 -p 1420 -m 10
  tzcli extract -s edsk...
  tzcli inject -n ... -s <signed bytes> -o '<operation json>'

Exit codes: 0 on success, 1 on any failure. Failures after validation end
with a line holding the error kind (fatal, timeout or connection); only
timeout and connection are safe to retry.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, List, Optional, Sequence

import typer
from typer.core import TyperGroup

from tzcli import __version__
from tzcli.config import CliConfig, load_cli_config

from .base import CommandSpec, Invocation, TimeoutPolicy, first_failure
from .commands import COMMANDS
from .outcome import Failure, capture
from .service import SdkService, TezosService

log = logging.getLogger(__name__)

HELP_HINT = "See --help for available actions."


@dataclass
class CliState:
    service: TezosService
    config: CliConfig


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _die(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN, err=True)
    raise typer.Exit(1)


def report_failure(failure: Failure) -> None:
    typer.secho("An error occurred. Error info below:", fg=typer.colors.RED, err=True)
    typer.echo(failure.message, err=True)
    typer.echo(failure.kind.value, err=True)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _resolve_timeout(spec: CommandSpec, options: Any, config: CliConfig) -> Optional[float]:
    if spec.timeout is TimeoutPolicy.NONE:
        return None
    if options.timeout:
        return options.timeout
    # REQUIRED commands never get here without a timeout
    typer.echo(f"Using default timeout ({config.default_timeout:g} seconds).")
    return config.default_timeout


def dispatch(spec: CommandSpec, options: Any, state: CliState) -> Any:
    """Validate, execute under the timeout, and report one command run."""
    if not options.node and state.config.node:
        options = replace(options, node=state.config.node)

    message = first_failure(spec.checks, options)
    if message:
        log.debug("%s: validation failed: %s", spec.name, message)
        _die(message)

    run = Invocation(state.service, _resolve_timeout(spec, options, state.config))
    log.debug("%s: executing (timeout=%s)", spec.name, run.timeout)
    outcome = asyncio.run(capture(spec.handler(options, run)))
    if isinstance(outcome, Failure):
        report_failure(outcome)
        raise typer.Exit(1)
    return outcome.value


def _bind(spec: CommandSpec) -> Callable[..., Any]:
    """Wrap an option schema into a Typer command that also receives the context."""

    @functools.wraps(spec.options)
    def command(ctx: typer.Context, **params: Any) -> Any:
        state = ctx.find_object(CliState)
        return dispatch(spec, spec.options(**params), state)

    schema = inspect.signature(spec.options)
    ctx_param = inspect.Parameter(
        "ctx", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=typer.Context
    )
    command.__signature__ = schema.replace(parameters=[ctx_param, *schema.parameters.values()])
    command.__annotations__ = {"ctx": typer.Context, **spec.options.__annotations__}
    return command


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


@contextmanager
def _usage_errors_exit_one() -> Iterator[None]:
    try:
        yield
    except typer.TyperException as e:
        # unknown options, unparseable values, options missing their value
        _usage_error(e.format_message())


def _usage_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN, err=True)
    typer.echo(HELP_HINT, err=True)
    raise typer.Exit(1)


class DispatcherGroup(TyperGroup):
    """Report usage errors and unknown subcommands with exit code 1."""

    def make_context(self, info_name, args, parent=None, **extra):  # noqa: ANN001, ANN201
        with _usage_errors_exit_one():
            return super().make_context(info_name, args, parent=parent, **extra)

    def invoke(self, ctx: typer.Context) -> Any:
        with _usage_errors_exit_one():
            return super().invoke(ctx)

    def resolve_command(self, ctx: typer.Context, args: List[str]):  # noqa: ANN201
        name = args[0] if args else ""
        if (
            name
            and not name.startswith("-")
            and not ctx.resilient_parsing
            and self.get_command(ctx, name) is None
        ):
            _usage_error(f"Invalid action provided: {' '.join(args)}.")
        return super().resolve_command(ctx, args)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tzcli {__version__}")
        raise typer.Exit()


def _main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "-v",
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging on stderr"),
) -> None:
    """Tezos CLI using tz_sdk."""
    _configure_logging(verbose)
    if ctx.obj is None:
        try:
            config = load_cli_config()
        except ValueError as e:
            _die(str(e))
        ctx.obj = CliState(service=SdkService(), config=config)
    if ctx.invoked_subcommand is None:
        _usage_error("No action provided.")


def build_app(commands: Sequence[CommandSpec] = COMMANDS) -> typer.Typer:
    """Build a fresh Typer application from a command table."""
    app = typer.Typer(
        name="tzcli",
        help="Tezos CLI using tz_sdk",
        cls=DispatcherGroup,
        invoke_without_command=True,
        add_completion=False,
    )
    app.callback()(_main_callback)
    for spec in commands:
        app.command(spec.name, help=spec.help)(_bind(spec))
    return app


def main() -> None:
    """Entry point for the tzcli command."""
    build_app(COMMANDS)()


if __name__ == "__main__":
    main()
