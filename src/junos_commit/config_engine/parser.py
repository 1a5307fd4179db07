"""Parse direction of the line codec: `display set` output -> record.

Each record class gets a dispatch table of (keyword, decoder) entries,
sorted longest first so that `vlan-id-list` wins over `vlan-id` and
`host-inbound-traffic system-services` wins over a shorter sibling.
"""
import dataclasses
import functools
import re
from typing import Any, Callable, Iterator, NamedTuple, TypeVar

from ..errors import DecodeError
from .generator import key_value
from .schema import (
    FieldInfo,
    FieldKind,
    XML_END_TAG_CONFIG_OUT,
    XML_START_TAG_CONFIG_OUT,
    statement_fields,
)

T = TypeVar("T")

_ESCAPED = re.compile(r"\\(.)")
# ASCII digits with an optional "-"; int() alone also takes "+5", "1_0" and non-ASCII digits
_INTEGER = re.compile(r"-?[0-9]+")


class DispatchEntry(NamedTuple):
    keyword: str
    field: FieldInfo
    decoder: Callable[[Any, FieldInfo, str, str], None]


def unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == '"' and token[-1] == '"':
        return _ESCAPED.sub(r"\1", token[1:-1])
    return token


def split_token(text: str) -> tuple[str, str]:
    """Split the first (possibly quoted) token off `text`."""
    text = text.strip()
    if text.startswith('"'):
        i = 1
        while i < len(text):
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == '"':
                return text[: i + 1], text[i + 1:].strip()
            i += 1
        return text, ""
    head, _, rest = text.partition(" ")
    return head, rest.strip()


def config_lines(text: str, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield (statement, original line) for every set line of `text`.

    Output framing, blank lines and anything that is not a set line are
    dropped. The `set ` prefix and a leading `path` are stripped, so both
    `display set` and `display set relative` output are accepted.
    """
    body = text
    if XML_START_TAG_CONFIG_OUT in body:
        body = body.split(XML_START_TAG_CONFIG_OUT, 1)[1]
    if XML_END_TAG_CONFIG_OUT in body:
        body = body.split(XML_END_TAG_CONFIG_OUT, 1)[0]

    for raw in body.splitlines():
        line = raw.strip()
        if not line.startswith("set "):
            continue
        item = line[len("set "):].strip()
        if path:
            if item == path:
                continue
            if item.startswith(path + " "):
                item = item[len(path) + 1:]
        yield item, line


def has_config(text: str) -> bool:
    """True if `text` holds at least one set line."""
    return any(True for _ in config_lines(text))


def _convert(value: str, info: FieldInfo, line: str) -> Any:
    if not value:
        raise DecodeError(line, info.name, "missing value")
    value = unquote(value)
    if info.value_type is int:
        if not _INTEGER.fullmatch(value):
            raise DecodeError(line, info.name, f"invalid integer {value!r}")
        return int(value)
    return value


def _decode_statement(record: Any, info: FieldInfo, rest: str, line: str) -> None:
    setattr(record, info.name, _convert(rest, info, line))


def _decode_flag(record: Any, info: FieldInfo, rest: str, line: str) -> None:
    setattr(record, info.name, True)


def _decode_repeated(record: Any, info: FieldInfo, rest: str, line: str) -> None:
    getattr(record, info.name).append(_convert(rest, info, line))


def _decode_block(record: Any, info: FieldInfo, rest: str, line: str) -> None:
    child = getattr(record, info.name)
    if child is None:
        # First line under the block: present, all defaults
        child = info.value_type()
        setattr(record, info.name, child)
    if rest:
        dispatch(child, rest, line)


def _decode_keyed_block(record: Any, info: FieldInfo, rest: str, line: str) -> None:
    token, remainder = split_token(rest)
    element_type = info.value_type
    key_info = next(
        (f for f in statement_fields(element_type) if f.spec.kind is FieldKind.KEY), None
    )
    if key_info is None:
        raise TypeError(f"{element_type.__name__} has no key field")
    key = _convert(token, key_info, line)

    elements = getattr(record, info.name)
    for element in elements:
        if key_value(element)[0] == key:
            break
    else:
        element = element_type(**{key_info.name: key})
        elements.append(element)
    if remainder:
        dispatch(element, remainder, line)


_DECODERS = {
    FieldKind.STATEMENT: _decode_statement,
    FieldKind.FLAG: _decode_flag,
    FieldKind.REPEATED: _decode_repeated,
    FieldKind.BLOCK: _decode_block,
    FieldKind.KEYED_BLOCKS: _decode_keyed_block,
}


@functools.lru_cache(maxsize=None)
def dispatch_table(cls: type) -> tuple[DispatchEntry, ...]:
    """Return the (keyword, decoder) entries of `cls`, most specific first."""
    entries = [
        DispatchEntry(info.spec.keyword, info, _DECODERS[info.spec.kind])
        for info in statement_fields(cls)
        if info.spec.kind is not FieldKind.KEY
    ]
    entries.sort(key=lambda e: (-len(e.keyword.split()), -len(e.keyword)))
    return tuple(entries)


def dispatch(record: Any, statement: str, line: str) -> bool:
    """Apply one relative statement to `record`. Returns False if nothing matched."""
    for entry in dispatch_table(type(record)):
        keyword = entry.keyword
        if statement == keyword or statement.startswith(keyword + " "):
            entry.decoder(record, entry.field, statement[len(keyword):].strip(), line)
            return True
    return False


def parse_lines(text: str, cls: type[T], path: str = "", **keys: Any) -> T:
    """Decode `display set` output into a new `cls` instance.

    Args:
        text: Raw command output, framing markers allowed
        cls: Record class to build
        path: Leading path stripped from absolute set lines
        **keys: Key fields of `cls` (identity is never read from lines)

    Raises:
        DecodeError: A value could not be converted to its field type
    """
    record = cls(**keys)
    for statement, line in config_lines(text, path):
        dispatch(record, statement, line)
    return record


def canonical(record: T) -> T:
    """Copy of `record` with unordered fields sorted, for comparisons."""
    changes = {}
    for info in statement_fields(type(record)):
        value = getattr(record, info.name)
        kind = info.spec.kind
        if kind is FieldKind.REPEATED:
            changes[info.name] = list(value) if info.spec.ordered else sorted(value, key=str)
        elif kind is FieldKind.BLOCK and value is not None:
            changes[info.name] = canonical(value)
        elif kind is FieldKind.KEYED_BLOCKS:
            elements = [canonical(e) for e in value]
            if not info.spec.ordered:
                elements.sort(key=lambda e: str(key_value(e)[0]))
            changes[info.name] = elements
    return dataclasses.replace(record, **changes)
