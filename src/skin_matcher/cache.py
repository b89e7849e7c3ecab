"""Local result cache.

Stores each session's ``RecommendationResult`` as a flat JSON file so a
client can redisplay it later. The engine never reads the cache itself;
staleness is decided by the caller.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from .schema import RecommendationResult

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def now_millis() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(time.time() * 1000)


class ResultCache:
    """One JSON file per session under ``directory``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", session_id).strip(".") or "session"
        return self.directory / f"{safe}.json"

    def save(self, session_id: str, result: RecommendationResult) -> Path:
        path = self.path_for(session_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Cached recommendations for session %s at %s", session_id, path)
        return path

    def load(self, session_id: str) -> Optional[RecommendationResult]:
        """Return the cached result, or None when missing or unreadable."""
        path = self.path_for(session_id)
        if not path.exists():
            return None
        try:
            return RecommendationResult.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", path, e)
            return None

    def clear(self, session_id: str) -> bool:
        """Delete a session's cached result. Returns True if one existed."""
        path = self.path_for(session_id)
        if path.exists():
            path.unlink()
            return True
        return False

    @staticmethod
    def is_stale(
        result: RecommendationResult,
        max_age_seconds: Optional[int],
        now: Optional[int] = None,
    ) -> bool:
        """Check a result's age against ``max_age_seconds`` (None never expires)."""
        if max_age_seconds is None:
            return False
        now = now if now is not None else now_millis()
        return now - result.timestamp > max_age_seconds * 1000
