"""Records — one entity of the hierarchy per item of the data block.

A record is an ordered mapping of string keys to YAML values. ``id``,
``parentId`` and ``name`` are exposed as properties; every other key is
kept as an open extension bag. The mapping loaded by ruamel.yaml is kept
as-is so that regenerating the document re-emits comments and quote styles
attached to the item.

Ids are compared by their string form: ``1`` and ``"1"`` are the same id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ruamel.yaml.comments import CommentedSeq
from ruamel.yaml.error import YAMLError

from ychart.domain import yamlio
from ychart.domain.errors import ParseError

ID_KEY = "id"
PARENT_KEY = "parentId"
NAME_KEY = "name"

_NAMED_KEYS = (ID_KEY, PARENT_KEY, NAME_KEY)

type FieldValue = str | int | float | bool | None | list[Any] | dict[str, Any]


def plain(value: Any) -> Any:
    """Convert ruamel round-trip scalars and containers to plain Python values."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, str):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [plain(v) for v in value]
    return value


def id_key(value: Any) -> str | None:
    """Normalize an id or parentId to its comparable string form."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class Record:
    """One node of the org chart."""

    fields: Mapping[str, Any]

    @property
    def id(self) -> Any:
        return self.fields.get(ID_KEY)

    @property
    def key(self) -> str | None:
        """String form of ``id`` used for lookups."""
        return id_key(self.id)

    @property
    def parent_id(self) -> Any:
        return self.fields.get(PARENT_KEY)

    @property
    def parent_key(self) -> str | None:
        return id_key(self.parent_id)

    @property
    def name(self) -> Any:
        return self.fields.get(NAME_KEY)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def extra(self) -> dict[str, Any]:
        """All fields except ``id``, ``parentId`` and ``name``."""
        return {k: v for k, v in self.fields.items() if k not in _NAMED_KEYS}

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.fields.get(field_name, default)

    def to_dict(self) -> dict[str, Any]:
        """Plain-Python copy of the record (no ruamel types)."""
        return {str(k): plain(v) for k, v in self.fields.items()}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Record:
        return cls(fields=mapping)


def parse_records(data_text: str) -> list[Record]:
    """Parse the data block into records.

    Raises:
        ParseError: If the block is not valid YAML, is not a sequence, or
            contains an item that is not a mapping.
    """
    try:
        data = yamlio.load(data_text)
    except YAMLError as exc:
        msg = f"Invalid YAML in data block: {exc}"
        raise ParseError(msg) from exc

    if not isinstance(data, list):
        msg = "Data block must be a sequence of records with id and parentId fields"
        raise ParseError(msg)

    records: list[Record] = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, Mapping):
            msg = f"Item {index}: record must be a mapping, got {type(item).__name__}"
            raise ParseError(msg)
        records.append(Record.from_mapping(item))
    return records


def records_to_yaml(records: Iterable[Record]) -> str:
    """Serialize records as a YAML block sequence."""
    seq = CommentedSeq(record.fields for record in records)
    if not seq:
        return "[]\n"
    return yamlio.dump(seq)


def find_index(records: Sequence[Record], record_id: Any) -> int | None:
    """Return the array index of the record with *record_id*, or None."""
    wanted = id_key(record_id)
    for index, record in enumerate(records):
        if record.key == wanted:
            return index
    return None


def display_fields(record: Record) -> dict[str, Any]:
    """Fields shown in a node's details panel.

    Keys starting with ``_`` are internal and ``picture`` is rendered
    separately, so both are left out.
    """
    return {
        str(k): plain(v)
        for k, v in record.fields.items()
        if not str(k).startswith("_") and k != "picture"
    }
