"""Build direction of the line codec: record -> set lines.

Only present fields produce lines, in declaration order, so an update
never touches what the caller left unset.
"""
from typing import Any, Optional

from .schema import ConfigResource, FieldKind, statement_fields


def quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_value(value: Any, quoted: bool = False) -> str:
    """Render one value token. Strings with blanks are always quoted."""
    if isinstance(value, bool):
        raise TypeError(f"boolean value {value!r} must be declared as a flag")
    text = str(value)
    if quoted or not text or any(c.isspace() for c in text):
        return quote(text)
    return text


def key_value(record: Any) -> tuple[Any, bool]:
    """Return (value, quoted) of the key field of a keyed block element."""
    for info in statement_fields(type(record)):
        if info.spec.kind is FieldKind.KEY:
            return getattr(record, info.name), info.spec.quoted
    raise TypeError(f"{type(record).__name__} has no key field")


def _build(record: Any, prefix: str) -> list[str]:
    lines = []
    for info in statement_fields(type(record)):
        spec = info.spec
        value = getattr(record, info.name)
        head = f"{prefix} {spec.keyword}"

        if spec.kind is FieldKind.KEY:
            continue
        elif spec.kind is FieldKind.STATEMENT:
            if value is not None:
                lines.append(f"{head} {format_value(value, spec.quoted)}")
        elif spec.kind is FieldKind.FLAG:
            if value:
                lines.append(head)
        elif spec.kind is FieldKind.REPEATED:
            for element in value:
                lines.append(f"{head} {format_value(element, spec.quoted)}")
        elif spec.kind is FieldKind.BLOCK:
            if value is not None:
                # A present block with nothing set still needs its own line
                lines.extend(_build(value, head) or [head])
        elif spec.kind is FieldKind.KEYED_BLOCKS:
            for element in value:
                name, quoted = key_value(element)
                element_head = f"{head} {format_value(name, quoted)}"
                lines.extend(_build(element, element_head) or [element_head])
    return lines


def build_lines(record: Any, path: Optional[str] = None, verb: str = "set") -> list[str]:
    """Translate a record into `<verb> <path> ...` lines.

    Args:
        record: Resource or nested block instance
        path: Statement path prefix. Defaults to `record.config_path()`
            for resources; an empty path emits lines relative to the record.
        verb: "set" (default) or "delete"

    Returns:
        Ordered list of lines. A resource with no field set yields the bare
        `set <path>` line, which creates it empty.
    """
    if path is None:
        if not isinstance(record, ConfigResource):
            raise TypeError("path is required for records that are not resources")
        path = record.config_path()
    prefix = f"{verb} {path}" if path else verb
    lines = _build(record, prefix)
    if not lines and isinstance(record, ConfigResource):
        return [prefix]
    return lines


def delete_lines(path: str) -> list[str]:
    return [f"delete {path}"]
