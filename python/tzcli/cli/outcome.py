"""
tzcli.cli.outcome — error taxonomy and the timeout race.

The wrapped library can fail in several shapes (typed SDK errors, httpx
transport errors, exceptions with empty messages), so failures are
classified by what they look like rather than by declared type:

  validation  bad or missing input, detected before any network call
  fatal       an error carrying a message; retrying will not help
  timeout     the timer won the race against the network call
  connection  no usable message or an unreachable node; retry may help
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Optional, TypeVar, Union

import httpx

from tz_sdk.errors import NodeUnreachableError

log = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT_MESSAGE = "Timeout"
UNKNOWN_MESSAGE = "Unknown error (check the URI and connection)."

__all__ = [
    "ErrorKind",
    "ValidationError",
    "OperationTimeout",
    "Success",
    "Failure",
    "Outcome",
    "classify",
    "race",
    "capture",
]


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    FATAL = "fatal"
    TIMEOUT = "timeout"
    CONNECTION = "connection"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.TIMEOUT, ErrorKind.CONNECTION)


class ValidationError(Exception):
    """Raised for bad user input; never reaches the node."""


class OperationTimeout(Exception):
    def __init__(self) -> None:
        super().__init__(TIMEOUT_MESSAGE)


@dataclass(frozen=True)
class Success:
    value: Any = None


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


Outcome = Union[Success, Failure]


def classify(error: object) -> Failure:
    """Map whatever the library raised (or rejected with) onto the taxonomy."""
    if isinstance(error, ValidationError):
        return Failure(ErrorKind.VALIDATION, str(error))
    if isinstance(error, BaseException):
        message = str(error)
        if message == TIMEOUT_MESSAGE:
            return Failure(ErrorKind.TIMEOUT, message)
        if isinstance(error, (NodeUnreachableError, httpx.TransportError)):
            return Failure(ErrorKind.CONNECTION, message or UNKNOWN_MESSAGE)
        if message:
            return Failure(ErrorKind.FATAL, message)
        return Failure(ErrorKind.CONNECTION, UNKNOWN_MESSAGE)
    if error is not None and error != "" and error is not False:
        return Failure(ErrorKind.FATAL, str(error))
    return Failure(ErrorKind.CONNECTION, UNKNOWN_MESSAGE)


async def race(awaitable: Awaitable[T], seconds: Optional[float]) -> T:
    """
    Await `awaitable`, giving up after `seconds`.

    Losing the race only stops the wait: the task is not cancelled here and
    keeps running until the event loop shuts down.
    """
    if seconds is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=seconds)
    if task not in done:
        log.info("operation still pending after %gs; no longer waiting", seconds)
        raise OperationTimeout()
    return task.result()


async def capture(awaitable: Awaitable[Any]) -> Outcome:
    """Run a command action and fold its result or error into an Outcome."""
    try:
        return Success(await awaitable)
    except Exception as e:
        log.debug("command failed", exc_info=True)
        return classify(e)
