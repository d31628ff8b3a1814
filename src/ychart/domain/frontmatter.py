"""Front matter — the configuration block that precedes the data block.

Document layout::

    ---
    options:
      nodeWidth: 220
    schema:
      id: number | required
      name: string | required
      department: string | optional | missing
    card:
      - div: $name$
    ---
    - id: 1
      name: CEO

The first line must be exactly ``---`` and a later line equal to ``---``
closes the block; otherwise the whole text is data with an empty
configuration. A configuration block that cannot be parsed never raises:
a warning is logged and the original text is treated as data.

:func:`render_document` is the inverse of :func:`parse_document` and is
deterministic: the same front matter and records always produce the same
text.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from ychart.domain import yamlio
from ychart.domain.card import CardTemplate, card_to_data, parse_card
from ychart.domain.errors import ParseError
from ychart.domain.records import Record, plain, records_to_yaml

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"

OPTIONS_KEY = "options"
SCHEMA_KEY = "schema"
CARD_KEY = "card"
_SECTION_KEYS = (OPTIONS_KEY, SCHEMA_KEY, CARD_KEY)

_REQUIRED = "required"
_OPTIONAL = "optional"
_MISSING = "missing"


# ---------------------------------------------------------------------------
# Schema fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSchema:
    """Declared type and presence modifiers of one record field."""

    type: str = "string"
    required: bool = False
    missing: bool = False


def parse_schema_field(definition: str) -> FieldSchema:
    """Parse ``"type | modifier | modifier"``.

    Token 0 is the type; ``required`` and ``missing`` anywhere after it set
    the matching flags. Unrecognized tokens are ignored.
    """
    parts = [part.strip() for part in definition.split("|")]
    modifiers = parts[1:]
    return FieldSchema(
        type=parts[0] or "string",
        required=_REQUIRED in modifiers,
        missing=_MISSING in modifiers,
    )


def format_schema_field(schema_field: FieldSchema) -> str:
    """Inverse of :func:`parse_schema_field`."""
    tokens = [schema_field.type, _REQUIRED if schema_field.required else _OPTIONAL]
    if schema_field.missing:
        tokens.append(_MISSING)
    return " | ".join(tokens)


# ---------------------------------------------------------------------------
# Front matter model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FrontMatter:
    """Parsed configuration block.

    ``source`` is the mapping loaded from the document, when there is one.
    Regeneration writes into a copy of it, so comments, key order and
    entries that could not be interpreted survive a rewrite.
    """

    options: dict[str, Any] = field(default_factory=dict)
    schema: dict[str, FieldSchema] = field(default_factory=dict)
    card: CardTemplate | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    source: CommentedMap | None = field(default=None, compare=False, repr=False)

    @property
    def is_empty(self) -> bool:
        return not (self.options or self.schema or self.card or self.extra)


@dataclass(frozen=True)
class ParsedDocument:
    """A document split into configuration and the raw data block."""

    front_matter: FrontMatter
    data_text: str
    has_front_matter: bool = False


def split_document(text: str) -> tuple[str, str] | None:
    """Split *text* into ``(config_block, data_text)``.

    Returns None when the text has no complete front matter. Lines after
    the closing delimiter are rejoined unchanged, so the data block may
    itself contain the delimiter.
    """
    lines = text.replace("\r\n", "\n").split("\n")
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return None

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == FRONT_MATTER_DELIMITER:
            return "\n".join(lines[1:index]), "\n".join(lines[index + 1 :])
    return None


def parse_config(block: str) -> FrontMatter:
    """Parse the configuration block into a :class:`FrontMatter`.

    ``options`` and ``schema`` are read permissively: an absent or null key
    yields an empty map. Non-string schema definitions and an invalid card
    are skipped here but kept in ``source``.

    Raises:
        ParseError: If the block is not valid YAML or not a mapping.
    """
    try:
        raw = yamlio.load(block)
    except YAMLError as exc:
        msg = f"Invalid YAML in front matter: {exc}"
        raise ParseError(msg) from exc

    if raw is None:
        return FrontMatter()
    if not isinstance(raw, Mapping):
        msg = "Front matter must be a mapping"
        raise ParseError(msg)

    options_raw = raw.get(OPTIONS_KEY) or {}
    if not isinstance(options_raw, Mapping):
        logger.warning("Ignoring non-mapping front matter options")
        options_raw = {}
    options = {str(k): plain(v) for k, v in options_raw.items()}

    schema: dict[str, FieldSchema] = {}
    schema_raw = raw.get(SCHEMA_KEY) or {}
    if isinstance(schema_raw, Mapping):
        for field_name, definition in schema_raw.items():
            if isinstance(definition, str):
                schema[str(field_name)] = parse_schema_field(definition)

    card: CardTemplate | None = None
    if raw.get(CARD_KEY) is not None:
        try:
            card = parse_card(raw[CARD_KEY]) or None
        except ParseError as exc:
            logger.warning("Ignoring invalid card template: %s", exc)

    extra = {str(k): plain(v) for k, v in raw.items() if k not in _SECTION_KEYS}
    source = raw if isinstance(raw, CommentedMap) else None
    return FrontMatter(options=options, schema=schema, card=card, extra=extra, source=source)


def parse_document(text: str) -> ParsedDocument:
    """Split and parse a document. Never raises."""
    parts = split_document(text)
    if parts is None:
        return ParsedDocument(front_matter=FrontMatter(), data_text=text)

    block, data_text = parts
    try:
        front_matter = parse_config(block)
    except ParseError as exc:
        logger.warning("Error parsing front matter, treating document as data: %s", exc)
        return ParsedDocument(front_matter=FrontMatter(), data_text=text)
    return ParsedDocument(front_matter=front_matter, data_text=data_text, has_front_matter=True)


# ---------------------------------------------------------------------------
# Regeneration
# ---------------------------------------------------------------------------


def render_front_matter(front_matter: FrontMatter) -> str:
    """Render the configuration block including both delimiters.

    A freshly built front matter emits options, schema, card, then any
    unknown top-level keys, with empty sections omitted. A parsed one is
    merged into a copy of its source mapping instead.
    """
    return _render_block(_config_mapping(front_matter))


def render_document(front_matter: FrontMatter, records: Iterable[Record]) -> str:
    """Regenerate full document text from configuration and records."""
    data = records_to_yaml(records)
    mapping = _config_mapping(front_matter)
    if not mapping:
        return data
    return f"{_render_block(mapping)}\n{data}"


def _render_block(mapping: CommentedMap) -> str:
    return f"{FRONT_MATTER_DELIMITER}\n{yamlio.dump(mapping)}{FRONT_MATTER_DELIMITER}\n"


def _config_mapping(front_matter: FrontMatter) -> CommentedMap:
    if front_matter.source is not None:
        return _merge_into_source(front_matter)

    mapping = CommentedMap()
    if front_matter.options:
        mapping[OPTIONS_KEY] = dict(front_matter.options)
    if front_matter.schema:
        mapping[SCHEMA_KEY] = {
            name: format_schema_field(schema_field)
            for name, schema_field in front_matter.schema.items()
        }
    if front_matter.card:
        mapping[CARD_KEY] = card_to_data(front_matter.card)
    for key, value in front_matter.extra.items():
        mapping[key] = value
    return mapping


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, (Mapping, list)) and not value)


def _merge_into_source(front_matter: FrontMatter) -> CommentedMap:
    """Write *front_matter* into a copy of the mapping it was parsed from.

    Values are assigned per key, so ruamel keeps the comments attached to
    them. Sections the model could not read are left as written.
    """
    mapping: CommentedMap = copy.deepcopy(front_matter.source)

    options_raw = mapping.get(OPTIONS_KEY)
    if isinstance(options_raw, Mapping):
        for key in [k for k in options_raw if str(k) not in front_matter.options]:
            del options_raw[key]
        for key, value in front_matter.options.items():
            if key not in options_raw or plain(options_raw[key]) != value:
                options_raw[key] = value
    elif front_matter.options:
        mapping[OPTIONS_KEY] = dict(front_matter.options)

    schema_raw = mapping.get(SCHEMA_KEY)
    if isinstance(schema_raw, Mapping):
        for key in [
            k
            for k, v in schema_raw.items()
            if isinstance(v, str) and str(k) not in front_matter.schema
        ]:
            del schema_raw[key]
        for name, schema_field in front_matter.schema.items():
            written = schema_raw.get(name)
            if not isinstance(written, str) or parse_schema_field(written) != schema_field:
                schema_raw[name] = format_schema_field(schema_field)
    elif front_matter.schema:
        mapping[SCHEMA_KEY] = {
            name: format_schema_field(schema_field)
            for name, schema_field in front_matter.schema.items()
        }

    card_raw = mapping.get(CARD_KEY)
    try:
        current = parse_card(card_raw) or None if card_raw is not None else None
        readable = True
    except ParseError:
        current, readable = None, False
    if front_matter.card and current != front_matter.card:
        mapping[CARD_KEY] = card_to_data(front_matter.card)
    elif not front_matter.card and readable and current is not None:
        del mapping[CARD_KEY]

    for key in [k for k in mapping if k not in _SECTION_KEYS and str(k) not in front_matter.extra]:
        del mapping[key]
    for key, value in front_matter.extra.items():
        if key not in mapping or plain(mapping[key]) != value:
            mapping[key] = value

    for key in _SECTION_KEYS:
        if key in mapping and _is_blank(mapping[key]):
            del mapping[key]
    return mapping
