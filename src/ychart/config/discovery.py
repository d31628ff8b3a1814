"""Config file discovery and loading.

Walk-up finder locates ychart.toml, similar to how git finds .git/.
Supports the YCHART_CONFIG env var and the --config CLI flag.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from ychart.config.models import YChartConfig

CONFIG_FILENAME = "ychart.toml"
CONFIG_ENV_VAR = "YCHART_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ychart.toml.

    Checks YCHART_CONFIG first; an env path that is not a file disables
    discovery.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> YChartConfig:
    """Load and validate config from a TOML file.

    Returns the default ``YChartConfig`` if no file is found.
    """
    if path is None:
        path = find_config(cwd)

    if path is None:
        return YChartConfig()

    raw = path.read_text(encoding="utf-8")
    data: dict[str, Any] = tomllib.loads(raw)
    return YChartConfig.model_validate(data)
