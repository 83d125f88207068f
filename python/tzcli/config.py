"""Shared configuration helpers for tzcli.

This module centralizes the environment variables the CLI honours so
commands do not each read os.environ on their own.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_TIMEOUT_SECONDS = 5.0

NODE_ENV = "TZCLI_NODE"
TIMEOUT_ENV = "TZCLI_DEFAULT_TIMEOUT"


@dataclass(frozen=True)
class CliConfig:
    node: Optional[str] = None
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS


def load_cli_config() -> CliConfig:
    node = os.getenv(NODE_ENV) or None
    raw_timeout = os.getenv(TIMEOUT_ENV)
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
    except ValueError as e:
        raise ValueError(f"{TIMEOUT_ENV} must be a number of seconds, got {raw_timeout!r}") from e
    if timeout <= 0:
        raise ValueError(f"{TIMEOUT_ENV} must be positive, got {raw_timeout!r}")
    return CliConfig(node=node, default_timeout=timeout)


__all__ = ["CliConfig", "load_cli_config", "DEFAULT_TIMEOUT_SECONDS", "NODE_ENV", "TIMEOUT_ENV"]
