"""
Building blocks for the command table.

A `CommandSpec` bundles everything the dispatcher needs to run one
subcommand: the Typer option schema, ordered input checks, the async
handler and how the timeout is resolved.
"""

from __future__ import annotations

import json
import string
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from .outcome import race
from .service import TezosService

T = TypeVar("T")

Check = Callable[[Any], Optional[str]]


class TimeoutPolicy(str, Enum):
    NONE = "none"          # no network call to bound
    DEFAULT = "default"    # fall back to the configured default, with a notice
    REQUIRED = "required"  # missing --timeout is a validation error


@dataclass
class Invocation:
    """Per-run context handed to a command handler."""

    service: TezosService
    timeout: Optional[float] = None

    async def race(self, awaitable: Awaitable[T]) -> T:
        return await race(awaitable, self.timeout)


@dataclass(frozen=True)
class CommandSpec:
    name: str
    help: str
    options: Callable[..., Any]
    checks: Sequence[Check]
    handler: Callable[[Any, Invocation], Awaitable[Any]]
    timeout: TimeoutPolicy = TimeoutPolicy.NONE


def first_failure(checks: Sequence[Check], options: Any) -> Optional[str]:
    """Run `checks` in order and return the first error message, if any."""
    for check in checks:
        message = check(options)
        if message:
            return message
    return None


# ---------------------------------------------------------------------------
# Check factories
# ---------------------------------------------------------------------------


def require(field: str, message: str) -> Check:
    def check(options: Any) -> Optional[str]:
        return None if getattr(options, field) else message

    return check


def mutez(field: str, label: str) -> Check:
    def check(options: Any) -> Optional[str]:
        value = getattr(options, field)
        if value and not (value.isascii() and value.isdigit()):
            return f"Invalid {label}: {value!r} (expected an integer amount in mutez)."
        return None

    return check


def positive(field: str, label: str) -> Check:
    def check(options: Any) -> Optional[str]:
        value = getattr(options, field)
        if value is not None and value <= 0:
            return f"Invalid {label}: {value:g} (must be greater than zero)."
        return None

    return check


def hex_string(field: str, label: str) -> Check:
    def check(options: Any) -> Optional[str]:
        value = getattr(options, field)
        if value and (len(value) % 2 or any(c not in string.hexdigits for c in value)):
            return f"Invalid {label}: expected a hex string."
        return None

    return check


def json_object(field: str, label: str) -> Check:
    def check(options: Any) -> Optional[str]:
        value = getattr(options, field)
        if not value:
            return None
        try:
            parsed = json.loads(value)
        except ValueError:
            return f"Invalid {label}: not valid JSON."
        if not isinstance(parsed, dict):
            return f"Invalid {label}: expected a JSON object."
        return None

    return check
