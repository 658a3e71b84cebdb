"""
Load the optional ``feeds.yaml``.

Only the ``collections`` section is read: a mapping of feed kind to backing
view name. ``${ENV_NAME}`` references anywhere inside a view name are
expanded from the environment (unset variables expand to an empty string).
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_feeds_config(config_path: Path) -> Dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        logger.warning("Feed config not found at %s; using built-in collections", path)
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        logger.warning("Feed config at %s is not a mapping; ignoring it", path)
        return {}
    return {"collections": _collections(data.get("collections"), path)}


def _collections(section: Any, path: Path) -> Dict[str, str]:
    if section is None:
        return {}
    if not isinstance(section, dict):
        logger.warning("'collections' in %s must map kinds to view names; ignoring it", path)
        return {}
    overrides: Dict[str, str] = {}
    for kind, view in section.items():
        if not isinstance(view, str):
            logger.warning("Ignoring non-string collection for '%s' in %s", kind, path)
            continue
        overrides[str(kind)] = _expand_env(view)
    return overrides


def _expand_env(value: str) -> str:
    return _ENV_REF.sub(lambda match: os.getenv(match.group(1), ""), value)
