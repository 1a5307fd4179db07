"""Config Engine - transactional configuration of Junos devices.

- Line codec: records <-> `set` lines (`build_lines`, `parse_lines`)
- Capability gate: reject unsupported features before any lock
- Session and Transaction: lock, stage, commit or clear
- Serialization gate: one read-modify-write sequence at a time
- Dry-run session: staged lines go to a list or a file

Usage:
    from junos_commit.config_engine import ConfigEngine, SerializationGate

    gate = SerializationGate()
    engine = ConfigEngine(device, gate, options)
    result = await engine.create(Vlan(name="blue", vlan_id="100"))
"""

from .engine import ConfigEngine
from .schema import (
    ConfigResource,
    DiagnosticWarning,
    OperationResult,
    FieldKind,
    EMPTY_OUTPUT,
    block,
    flag,
    key,
    keyed_blocks,
    repeated,
    statement,
)
from .capabilities import Feature, parse_version, require, supported_features, supports
from .generator import build_lines, delete_lines
from .parser import canonical, dispatch_table, has_config, parse_lines
from .gate import SerializationGate
from .session import Session
from .transaction import Transaction, TransactionState
from .dryrun import DryRunSession

__all__ = [
    # Main engine
    "ConfigEngine",
    # Schema
    "ConfigResource",
    "DiagnosticWarning",
    "OperationResult",
    "FieldKind",
    "EMPTY_OUTPUT",
    "block",
    "flag",
    "key",
    "keyed_blocks",
    "repeated",
    "statement",
    # Capability gate
    "Feature",
    "parse_version",
    "require",
    "supported_features",
    "supports",
    # Codec
    "build_lines",
    "delete_lines",
    "canonical",
    "dispatch_table",
    "has_config",
    "parse_lines",
    # Sessions and transactions
    "SerializationGate",
    "Session",
    "Transaction",
    "TransactionState",
    "DryRunSession",
]
