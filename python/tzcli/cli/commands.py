"""
tzcli.cli.commands — the subcommand table.

Implements:
  - tzcli transfer            Move funds between accounts
  - tzcli forgeBatchTransfer  Forge and sign (but do not inject) a batch of transfers
  - tzcli extract             Derive the public key hash of a secret key
  - tzcli inject              Inject a signed operation

Amounts and fees are always raw mutez strings.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import typer

from tz_sdk.errors import InvalidKeyError
from tz_sdk.utils.units import to_tez

from .base import (
    CommandSpec,
    Invocation,
    TimeoutPolicy,
    hex_string,
    json_object,
    mutez,
    positive,
    require,
)

log = logging.getLogger(__name__)

BATCH_GAS_LIMIT = "200"
BATCH_STORAGE_LIMIT = "0"

__all__ = [
    "COMMANDS",
    "MALFORMED",
    "Recipient",
    "BadSecretKey",
    "parse_recipient",
    "build_batch",
]


class BadSecretKey(Exception):
    def __init__(self) -> None:
        super().__init__("Bad secret key.")


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


class Recipient(NamedTuple):
    pkh: str
    amount: str


class _Malformed:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MALFORMED"


MALFORMED = _Malformed()

ParsedRecipient = Union[Recipient, _Malformed]


def parse_recipient(token: str) -> ParsedRecipient:
    """Parse ``<pkh>@<mutez>``; anything else becomes MALFORMED."""
    parts = token.split("@")
    if len(parts) != 2:
        return MALFORMED
    pkh, amount = (p.strip() for p in parts)
    if not pkh or not (amount.isascii() and amount.isdigit()):
        return MALFORMED
    return Recipient(pkh, amount)


def build_batch(recipients: Sequence[Recipient], fee: str) -> List[Dict[str, Any]]:
    """One transaction descriptor per recipient, all sharing `fee`."""
    return [
        {
            "kind": "transaction",
            "fee": fee,
            "gas_limit": BATCH_GAS_LIMIT,
            "storage_limit": BATCH_STORAGE_LIMIT,
            "amount": r.amount,
            "destination": r.pkh,
        }
        for r in recipients
    ]


# ---------------------------------------------------------------------------
# Option records & schemas
# ---------------------------------------------------------------------------

NODE_HELP = "Tezos node URI"
TIMEOUT_HELP = "timeout in seconds for request"


@dataclass(frozen=True)
class TransferOptions:
    node: Optional[str]
    from_sk: Optional[str]
    to_pkh: Optional[str]
    amount: Optional[str]
    fee: Optional[str]
    timeout: Optional[float]


def transfer_options(
    node: Optional[str] = typer.Option(None, "-n", "--node", help=NODE_HELP),
    from_sk: Optional[str] = typer.Option(None, "-f", "--fromSK", help="sender secret key"),
    to_pkh: Optional[str] = typer.Option(None, "-t", "--toPKH", help="receiver public key hash"),
    amount: Optional[str] = typer.Option(None, "-a", "--amount", help="amount to transfer in mutez"),
    fee: Optional[str] = typer.Option(None, "-p", "--fee", help="desired operation fee in mutez"),
    timeout: Optional[float] = typer.Option(None, "-m", "--timeout", help=TIMEOUT_HELP),
) -> TransferOptions:
    return TransferOptions(node, from_sk, to_pkh, amount, fee, timeout)


@dataclass(frozen=True)
class ForgeBatchOptions:
    node: Optional[str]
    from_sk: Optional[str]
    tokens: Tuple[str, ...]
    recipients: Tuple[ParsedRecipient, ...]
    fee: Optional[str]
    timeout: Optional[float]


def forge_batch_options(
    node: Optional[str] = typer.Option(None, "-n", "--node", help=NODE_HELP),
    from_sk: Optional[str] = typer.Option(None, "-f", "--fromSK", help="sender secret key"),
    recipient: Optional[List[str]] = typer.Option(
        None, "-r", "--recipient", help="receiver as <hash>@<mutez> (repeatable)"
    ),
    fee: Optional[str] = typer.Option(None, "-p", "--fee", help="fee per recipient in mutez"),
    timeout: Optional[float] = typer.Option(None, "-m", "--timeout", help=TIMEOUT_HELP),
) -> ForgeBatchOptions:
    tokens = tuple(recipient or ())
    # Every token is parsed up front; rejection happens during validation.
    parsed = tuple(parse_recipient(t) for t in tokens)
    return ForgeBatchOptions(node, from_sk, tokens, parsed, fee, timeout)


@dataclass(frozen=True)
class ExtractOptions:
    secret: Optional[str]
    node: Optional[str]


def extract_options(
    secret: Optional[str] = typer.Option(None, "-s", "--secret", help="secret key"),
    node: Optional[str] = typer.Option(None, "-n", "--node", help=f"{NODE_HELP} (unused)"),
) -> ExtractOptions:
    return ExtractOptions(secret, node)


@dataclass(frozen=True)
class InjectOptions:
    node: Optional[str]
    signed: Optional[str]
    op_object: Optional[str]
    timeout: Optional[float]


def inject_options(
    node: Optional[str] = typer.Option(None, "-n", "--node", help=NODE_HELP),
    signed: Optional[str] = typer.Option(None, "-s", "--signed", help="signed operation bytes"),
    op_object: Optional[str] = typer.Option(None, "-o", "--object", help="operation object (JSON)"),
    timeout: Optional[float] = typer.Option(None, "-m", "--timeout", help=TIMEOUT_HELP),
) -> InjectOptions:
    return InjectOptions(node, signed, op_object, timeout)


# ---------------------------------------------------------------------------
# Batch checks
# ---------------------------------------------------------------------------


def _recipients_present(options: ForgeBatchOptions) -> Optional[str]:
    return None if options.recipients else "No recipients provided."


def _recipients_well_formed(options: ForgeBatchOptions) -> Optional[str]:
    for token, parsed in zip(options.tokens, options.recipients):
        if parsed is MALFORMED:
            return f"Malformed recipient {token!r} (expected <hash>@<mutez>)."
    return None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def run_transfer(options: TransferOptions, run: Invocation) -> str:
    service = run.service
    service.set_provider(options.node)
    keys = service.extract_keys(options.from_sk)
    log.debug("transfer %s mutez from %s to %s", options.amount, keys.pkh, options.to_pkh)
    # Bad requests usually fail fast, but every request is bounded.
    op_hash = await run.race(
        service.transfer(keys.pkh, keys, options.to_pkh, options.amount, options.fee)
    )
    typer.secho("Transfer successfully injected.", fg=typer.colors.GREEN)
    typer.echo(f"Operation hash: {op_hash}")
    typer.echo(f"Amount: {to_tez(options.amount)} tez")
    return op_hash


async def run_forge_batch(options: ForgeBatchOptions, run: Invocation) -> str:
    service = run.service
    service.set_provider(options.node)
    keys = service.extract_keys(options.from_sk)
    operations = build_batch(options.recipients, options.fee)
    log.debug("forging %d transfer(s) from %s", len(operations), keys.pkh)

    forged = await run.race(service.forge_operation(keys.pkh, operations, keys))
    signed = service.sign(forged.opbytes, keys.sk, "generic")
    op_ob = dict(forged.op_ob, signature=signed.edsig)

    typer.secho(f"Forged and signed {len(operations)} transfer(s).", fg=typer.colors.GREEN)
    typer.echo("Signed bytes:")
    typer.echo(signed.sbytes)
    typer.echo("Operation object:")
    typer.echo(json.dumps(op_ob, separators=(",", ":")))
    return signed.sbytes


async def run_extract(options: ExtractOptions, run: Invocation) -> str:
    if options.node:
        log.debug("extract ignores --node %s", options.node)
    try:
        keys = run.service.extract_keys(options.secret)
    except InvalidKeyError as e:
        raise BadSecretKey() from e
    if not keys or not keys.pkh:
        raise BadSecretKey()
    typer.secho("Keys successfully extracted.", fg=typer.colors.GREEN)
    typer.echo(f"Public key hash: {keys.pkh}")
    return keys.pkh


async def run_inject(options: InjectOptions, run: Invocation) -> str:
    service = run.service
    service.set_provider(options.node)
    op_ob = json.loads(options.op_object)
    op_hash = await run.race(service.inject(op_ob, options.signed))
    typer.secho("Operation successfully injected.", fg=typer.colors.GREEN)
    typer.echo(f"Operation hash: {op_hash}")
    return op_hash


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

COMMANDS: Tuple[CommandSpec, ...] = (
    CommandSpec(
        name="transfer",
        help="move funds between accounts",
        options=transfer_options,
        checks=(
            require("node", "No Tezos node provided."),
            require("from_sk", "No sender SK provided."),
            require("to_pkh", "No receiver PKH provided."),
            require("amount", "No amount provided."),
            require("fee", "No fee provided."),
            mutez("amount", "amount"),
            mutez("fee", "fee"),
            positive("timeout", "timeout"),
        ),
        handler=run_transfer,
        timeout=TimeoutPolicy.DEFAULT,
    ),
    CommandSpec(
        name="forgeBatchTransfer",
        help="forge and sign a batch transfer without injecting it",
        options=forge_batch_options,
        checks=(
            require("node", "No Tezos node provided."),
            require("from_sk", "No sender SK provided."),
            require("fee", "No fee provided."),
            require("timeout", "No timeout provided."),
            mutez("fee", "fee"),
            positive("timeout", "timeout"),
            _recipients_present,
            _recipients_well_formed,
        ),
        handler=run_forge_batch,
        timeout=TimeoutPolicy.REQUIRED,
    ),
    CommandSpec(
        name="extract",
        help="derive the public key hash of a secret key",
        options=extract_options,
        checks=(require("secret", "No secret key provided."),),
        handler=run_extract,
    ),
    CommandSpec(
        name="inject",
        help="inject a signed operation",
        options=inject_options,
        checks=(
            require("node", "No Tezos node provided."),
            require("signed", "No signed bytes provided."),
            require("op_object", "No operation object provided."),
            hex_string("signed", "signed bytes"),
            json_object("op_object", "operation object"),
            positive("timeout", "timeout"),
        ),
        handler=run_inject,
        timeout=TimeoutPolicy.DEFAULT,
    ),
)
