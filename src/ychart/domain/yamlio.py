"""Round-trip YAML helpers shared by the front matter and data parsers."""

from __future__ import annotations

from io import StringIO
from typing import Any

from ruamel.yaml import YAML


def new_yaml() -> YAML:
    """Create a fresh round-trip YAML parser.

    A new instance per call avoids corrupted internal emitter state from
    propagating across operations (ruamel.yaml's YAML object is stateful
    and a failed dump can leave the singleton in a broken state).
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    y.width = 4096
    return y


def load(text: str) -> Any:
    """Parse one YAML document. Raises ``ruamel.yaml.error.YAMLError``."""
    return new_yaml().load(text)


def dump(data: Any) -> str:
    """Serialize *data* as block-style YAML."""
    buf = StringIO()
    new_yaml().dump(data, buf)
    return buf.getvalue()
