"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ychart.toml only contains
overrides. A document's own ``options`` section is resolved on top of the
``[chart]`` section by :func:`resolve_options`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ychart.domain.types import ViewMode

logger = logging.getLogger(__name__)


# --- Chart options (document ``options`` + [chart] section) ---


class ChartOptions(BaseModel):
    """Resolved chart geometry and editor options.

    Field aliases are the camelCase keys users write in front matter.
    Unknown keys are ignored.
    """

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    node_width: float = Field(default=220, gt=0, alias="nodeWidth")
    node_height: float = Field(default=110, gt=0, alias="nodeHeight")
    children_margin: float = Field(default=50, ge=0, alias="childrenMargin")
    compact_margin_between: float = Field(default=35, ge=0, alias="compactMarginBetween")
    compact_margin_pair: float = Field(default=30, ge=0, alias="compactMarginPair")
    neighbour_margin: float = Field(default=20, ge=0, alias="neighbourMargin")
    editor_theme: str = Field(default="dark", alias="editorTheme")
    min_zoom: float = Field(default=0.1, gt=0, alias="minZoom")
    max_zoom: float = Field(default=4, gt=0, alias="maxZoom")


def _aliases() -> dict[str, str]:
    keys: dict[str, str] = {}
    for name, info in ChartOptions.model_fields.items():
        keys[name] = name
        if info.alias:
            keys[info.alias] = name
    return keys


def resolve_options(defaults: ChartOptions, raw: Mapping[str, Any] | None) -> ChartOptions:
    """Overlay a document's raw ``options`` mapping on *defaults*.

    Keys are validated one at a time so a single bad value only drops
    that key. Unknown keys are ignored silently.
    """
    if not raw:
        return defaults

    known = _aliases()
    merged = defaults.model_dump()
    for key, value in raw.items():
        name = known.get(str(key))
        if name is None:
            continue
        candidate = {**merged, name: value}
        try:
            ChartOptions.model_validate(candidate)
        except ValidationError:
            logger.warning("Dropping invalid chart option %s=%r", key, value)
            continue
        merged = candidate
    return ChartOptions.model_validate(merged)


# --- ychart.toml sections ---


class HeightSyncConfig(BaseModel):
    """[height_sync] section."""

    model_config = {"frozen": True}

    min_height: float = 80
    max_height: float | None = None
    padding: float = 0
    debounce: float = 0.15


class ExportConfig(BaseModel):
    """[export] section."""

    model_config = {"frozen": True}

    title: str = "Org chart"
    view: ViewMode = ViewMode.TREE


class PositionsConfig(BaseModel):
    """[positions] section."""

    model_config = {"frozen": True}

    filename: str = ".{stem}.positions.json"

    def path_for(self, document: Path) -> Path:
        """Cache file beside *document*; ``{stem}`` expands to its stem."""
        return document.parent / self.filename.format(stem=document.stem)


class YChartConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    chart: ChartOptions = Field(default_factory=ChartOptions)
    height_sync: HeightSyncConfig = Field(default_factory=HeightSyncConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    positions: PositionsConfig = Field(default_factory=PositionsConfig)
