"""Card templates — a small declarative DSL for drawing one node.

The ``card`` front matter section is a sequence of ``{tag: spec}`` entries.
``spec`` is either a string (the element's content) or a mapping with the
optional keys ``class``, ``style``, ``content`` and ``children``::

    card:
      - div:
          class: card
          children:
            - h3: $name$
            - p:
                style: "color: #666"
                content: $title$ ($department$)

Any ``$field$`` token is replaced by the record's value for ``field``;
absent, null and empty values become the empty string. Substituted values
are HTML-escaped, template literals are emitted verbatim. There is no
escape for a literal ``$``.
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ychart.domain.errors import ParseError

_TOKEN_RE = re.compile(r"\$([^$\s]+)\$")
_TAG_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


@dataclass(frozen=True)
class TextNode:
    """Bare string element: substituted text, no markup."""

    text: str


@dataclass(frozen=True)
class Element:
    """Tagged element with optional attributes, content and children."""

    tag: str
    class_: str | None = None
    style: str | None = None
    content: str | None = None
    children: tuple[CardElement, ...] = ()


type CardElement = TextNode | Element
type CardTemplate = tuple[CardElement, ...]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_card(raw: Any) -> CardTemplate:
    """Build a card template from the raw ``card`` front matter value.

    A single mapping is accepted in place of a one-item sequence.

    Raises:
        ParseError: If an entry is not a string or a ``{tag: spec}`` mapping,
            or a tag name is not a valid element name.
    """
    if raw is None:
        return ()
    if isinstance(raw, (Mapping, str)):
        raw = [raw]
    if not isinstance(raw, list):
        msg = f"card must be a sequence of elements, got {type(raw).__name__}"
        raise ParseError(msg)

    elements: list[CardElement] = []
    for entry in raw:
        elements.extend(_parse_entry(entry))
    return tuple(elements)


def _parse_entry(entry: Any) -> list[CardElement]:
    if isinstance(entry, str):
        return [TextNode(entry)]
    if isinstance(entry, (int, float)):
        return [TextNode(_scalar_text(entry))]
    if isinstance(entry, Mapping):
        return [_parse_element(str(tag), spec) for tag, spec in entry.items()]
    msg = f"card element must be a string or a {{tag: spec}} mapping, got {type(entry).__name__}"
    raise ParseError(msg)


def _parse_element(tag: str, spec: Any) -> Element:
    if not _TAG_RE.match(tag):
        msg = f"Invalid card element tag {tag!r}"
        raise ParseError(msg)

    if spec is None:
        return Element(tag=tag)
    if isinstance(spec, (str, int, float)):
        return Element(tag=tag, content=_scalar_text(spec))
    if isinstance(spec, list):
        return Element(tag=tag, children=_parse_children(spec))
    if not isinstance(spec, Mapping):
        msg = f"Card element {tag!r} must map to a string or a mapping"
        raise ParseError(msg)

    content = spec.get("content")
    return Element(
        tag=tag,
        class_=_optional_text(spec.get("class")),
        style=_optional_text(spec.get("style")),
        content=None if content is None else _scalar_text(content),
        children=_parse_children(spec.get("children")),
    )


def _parse_children(raw: Any) -> tuple[CardElement, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raw = [raw]
    children: list[CardElement] = []
    for entry in raw:
        children.extend(_parse_entry(entry))
    return tuple(children)


def _optional_text(value: Any) -> str | None:
    return None if value is None else _scalar_text(value)


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def card_to_data(card: CardTemplate) -> list[Any]:
    """Inverse of :func:`parse_card` — plain data suitable for YAML output."""
    return [_element_to_data(element) for element in card]


def _element_to_data(element: CardElement) -> Any:
    if isinstance(element, TextNode):
        return element.text
    if element.class_ is None and element.style is None and not element.children:
        return {element.tag: element.content}
    spec: dict[str, Any] = {}
    if element.class_ is not None:
        spec["class"] = element.class_
    if element.style is not None:
        spec["style"] = element.style
    if element.content is not None:
        spec["content"] = element.content
    if element.children:
        spec["children"] = [_element_to_data(child) for child in element.children]
    return {element.tag: spec}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def substitute(text: str, record: Mapping[str, Any] | Any) -> str:
    """Replace every ``$field$`` token in *text* with the record's value."""
    return _TOKEN_RE.sub(lambda m: _value_text(_lookup(record, m.group(1))), text)


def _lookup(record: Any, field_name: str) -> Any:
    getter = getattr(record, "get", None)
    if getter is None:
        return None
    return getter(field_name)


def _value_text(value: Any) -> str:
    if value is None or value == "":
        return ""
    return html.escape(_scalar_text(value), quote=True)


def render_element(element: CardElement, record: Any) -> str:
    """Render one element (and its subtree) against *record*."""
    if isinstance(element, TextNode):
        return substitute(element.text, record)

    attrs = ""
    if element.class_ is not None:
        attrs += f' class="{substitute(element.class_, record)}"'
    if element.style is not None:
        attrs += f' style="{substitute(element.style, record)}"'

    inner = substitute(element.content, record) if element.content is not None else ""
    inner += "".join(render_element(child, record) for child in element.children)
    return f"<{element.tag}{attrs}>{inner}</{element.tag}>"


def render_template(card: CardTemplate, record: Any) -> str:
    """Render every top-level element of *card* and concatenate the markup."""
    return "".join(render_element(element, record) for element in card)


def fallback_card(record: Any, *, width: float, height: float) -> str:
    """Built-in layout used when neither an override nor a card is set."""

    def field(name: str) -> str:
        return _value_text(_lookup(record, name))

    return (
        f'<div class="ychart-card" style="width:{width:g}px;height:{height:g}px;padding:12px;'
        "background:#fff;border:2px solid #4A90E2;border-radius:8px;box-sizing:border-box;"
        'display:flex;align-items:center;gap:12px">'
        '<div style="flex:1;min-width:0">'
        f'<div class="ychart-card-name" style="font-size:14px;font-weight:bold;color:#333">'
        f"{field('name')}</div>"
        f'<div class="ychart-card-title" style="font-size:12px;color:#666">{field("title")}</div>'
        f'<div class="ychart-card-department" style="font-size:11px;color:#999">'
        f"{field('department')}</div>"
        "</div></div>"
    )
