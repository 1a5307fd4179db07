"""Schema definitions for the Config Engine.

A resource is a dataclass whose fields are declared with the helpers below.
Each helper stores a `StatementSpec` in the field metadata, telling the codec
which keyword the field maps to and how its value is laid out on a line:

    @dataclass
    class Vlan(ConfigResource):
        name: str = key()
        description: Optional[str] = statement("description", quoted=True)
        vlan_id: Optional[str] = statement("vlan-id")
        vxlan: Optional[VlanVxlan] = block("vxlan")

Unset is structural: None for statements and blocks, an empty list for
repeated fields and keyed blocks, False for flags.
"""
import functools
from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Optional, Union, get_args, get_origin, get_type_hints

from ..devices.base import RPCError
from .capabilities import Feature

EMPTY_OUTPUT = ""

CMD_SHOW_CONFIG = "show configuration"
PIPE_DISPLAY_SET = "| display set"
PIPE_DISPLAY_SET_RELATIVE = "| display set relative"

XML_START_TAG_CONFIG_OUT = "<configuration-output>"
XML_END_TAG_CONFIG_OUT = "</configuration-output>"

STATEMENT_META = "junos_statement"


class FieldKind(str, Enum):
    """How a field is laid out on a set line."""
    KEY = "key"                    # identity, part of the path
    STATEMENT = "statement"        # <keyword> <value>
    FLAG = "flag"                  # <keyword>
    REPEATED = "repeated"          # <keyword> <value>, one line per element
    BLOCK = "block"                # <keyword> <sub-statements...>
    KEYED_BLOCKS = "keyed_blocks"  # <keyword> <key> <sub-statements...>


@dataclass(frozen=True)
class StatementSpec:
    """Codec metadata of one field."""
    kind: FieldKind
    keyword: str = ""
    quoted: bool = False
    ordered: bool = True


def key(quoted: bool = False, default: Any = MISSING) -> Any:
    """Identity field. Not emitted as a statement."""
    return field(
        default=default,
        metadata={STATEMENT_META: StatementSpec(FieldKind.KEY, quoted=quoted)},
    )


def statement(keyword: str, quoted: bool = False) -> Any:
    return field(
        default=None,
        metadata={STATEMENT_META: StatementSpec(FieldKind.STATEMENT, keyword, quoted=quoted)},
    )


def flag(keyword: str) -> Any:
    return field(
        default=False,
        metadata={STATEMENT_META: StatementSpec(FieldKind.FLAG, keyword)},
    )


def repeated(keyword: str, quoted: bool = False, ordered: bool = True) -> Any:
    """List field, one line per element.

    `ordered=False` marks a set-valued field: its element order carries no
    meaning and is ignored by `canonical()`.
    """
    return field(
        default_factory=list,
        metadata={STATEMENT_META: StatementSpec(
            FieldKind.REPEATED, keyword, quoted=quoted, ordered=ordered
        )},
    )


def block(keyword: str) -> Any:
    return field(
        default=None,
        metadata={STATEMENT_META: StatementSpec(FieldKind.BLOCK, keyword)},
    )


def keyed_blocks(keyword: str, ordered: bool = True) -> Any:
    return field(
        default_factory=list,
        metadata={STATEMENT_META: StatementSpec(FieldKind.KEYED_BLOCKS, keyword, ordered=ordered)},
    )


def statement_spec(f) -> Optional[StatementSpec]:
    return f.metadata.get(STATEMENT_META)


@dataclass(frozen=True)
class FieldInfo:
    name: str
    spec: StatementSpec
    value_type: type


def _value_type(hint: Any) -> type:
    """Optional[int] -> int, list[Unit] -> Unit, str -> str."""
    origin = get_origin(hint)
    if origin is Union or origin is list:
        args = [a for a in get_args(hint) if a is not type(None)]
        return _value_type(args[0]) if args else str
    return hint


@functools.lru_cache(maxsize=None)
def statement_fields(cls: type) -> tuple[FieldInfo, ...]:
    """Codec fields of a record class, in declaration order."""
    hints = get_type_hints(cls)
    result = []
    for f in fields(cls):
        spec = statement_spec(f)
        if spec is None:
            continue
        result.append(FieldInfo(f.name, spec, _value_type(hints[f.name])))
    return tuple(result)


@dataclass
class ConfigResource:
    """Base class of the records the engine creates, reads and deletes.

    Subclasses set `resource_type`, optionally `required_feature`, and
    implement `config_path()` from their key fields.
    """
    resource_type: ClassVar[str] = ""
    required_feature: ClassVar[Optional[Feature]] = None

    def config_path(self) -> str:
        raise NotImplementedError

    def identity(self) -> dict[str, Any]:
        result = {}
        for f in fields(self):
            spec = statement_spec(f)
            if spec is not None and spec.kind is FieldKind.KEY:
                result[f.name] = getattr(self, f.name)
        return result

    def delete_lines(self) -> list[str]:
        return [f"delete {self.config_path()}"]


@dataclass(frozen=True)
class DiagnosticWarning:
    """Non-fatal message returned by the device, usually on commit."""
    message: str
    severity: str = "warning"
    path: str = ""
    element: str = ""

    @classmethod
    def from_rpc_error(cls, error: RPCError) -> "DiagnosticWarning":
        return cls(
            message=error.message,
            severity=error.severity,
            path=error.path,
            element=error.element,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"path: {self.path}")
        if self.element:
            parts.append(f"element: {self.element}")
        return " | ".join(parts)


@dataclass
class OperationResult:
    """Outcome of a successful create/update/delete."""
    operation: str
    resource_type: str
    dry_run: bool = False
    lines: list[str] = field(default_factory=list)
    warnings: list[DiagnosticWarning] = field(default_factory=list)
    clear_errors: list[Exception] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "resource_type": self.resource_type,
            "dry_run": self.dry_run,
            "lines": list(self.lines),
            "warnings": [str(w) for w in self.warnings],
            "clear_errors": [str(e) for e in self.clear_errors],
        }
