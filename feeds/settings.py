"""
Centralised settings for the feed layer (env-first, code-light).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class FeedSettings:
    store_url: Optional[str]
    store_key: Optional[str]
    timeout_seconds: int
    max_retries: int
    user_id: Optional[str]
    config_path: Path


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value >= 0 else default
    except ValueError:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _str_from_env(key: str) -> Optional[str]:
    raw = os.getenv(key)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def load_settings(dotenv: bool = True) -> FeedSettings:
    if dotenv:
        load_dotenv()
    return FeedSettings(
        store_url=_str_from_env("FEEDS_STORE_URL"),
        store_key=_str_from_env("FEEDS_STORE_KEY"),
        timeout_seconds=_int_from_env("FEEDS_TIMEOUT", 15),
        max_retries=_int_from_env("FEEDS_MAX_RETRIES", 3),
        user_id=_str_from_env("FEEDS_USER_ID"),
        config_path=Path(_str_from_env("FEEDS_CONFIG_PATH") or "feeds.yaml"),
    )
