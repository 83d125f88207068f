"""
Tezos SDK — Python
Convenience exports for the APIs the tzcli commands rely on.
"""

from .version import __version__  # noqa: F401

# Errors
from .errors import (  # noqa: F401
    TzSdkError,
    InvalidKeyError,
    RpcError,
    NodeUnreachableError,
    OperationError,
)

# Keys & signing
from .crypto import Keys, Signature, extract_keys, sign  # noqa: F401

# Node facade
from .node import ForgedOperation, TezosNode  # noqa: F401

# Units
from .utils.units import to_mutez, to_tez  # noqa: F401
