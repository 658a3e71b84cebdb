"""
Status helpers for dashboards and the CLI.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from feeds.hub import FeedHub
from feeds.service import FeedService


def _feed_to_dict(service: FeedService) -> Dict[str, Any]:
    state = service.state
    return {
        "collection": service.kind.collection,
        "phase": state.phase.value,
        "items": len(state.items),
        "is_loading": state.is_loading,
        "error": state.error,
        "last_success": state.last_success.isoformat() if state.last_success else None,
        "pending_toggles": sorted(service.pending_toggles),
    }


def build_status(hub: FeedHub) -> Dict[str, Any]:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "feeds": {service.name: _feed_to_dict(service) for service in hub.all()},
        "reactions": {"cached_posts": len(hub.reactions)},
    }
