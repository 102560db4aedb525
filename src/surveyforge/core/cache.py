"""File cache for AI collaborator responses."""

import hashlib
import json
from pathlib import Path
from typing import Any, Optional

from surveyforge.core.logging import get_logger

logger = get_logger("surveyforge.cache")


class ResponseCache:
    """
    Caches validated AI responses on disk.

    Entries are JSON files named by the sha256 of their key, so identical
    generation requests against the same provider/model are answered
    without another model call.
    """

    def __init__(self, cache_dir: Path):
        """Initialize cache with directory."""
        self.cache_dir = cache_dir
        cache_dir.mkdir(parents=True, exist_ok=True)

    def _get_cache_path(self, key: str) -> Path:
        key_hash = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{key_hash}.json"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found or unreadable
        """
        cache_path = self._get_cache_path(key)
        if not cache_path.exists():
            return None

        try:
            data = json.loads(cache_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {cache_path.name}: {e}")
            return None
        return data.get("value")

    def set(self, key: str, value: Any, metadata: Optional[dict[str, Any]] = None) -> None:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            metadata: Optional metadata to store with cache entry
        """
        cache_data: dict[str, Any] = {"value": value}
        if metadata:
            cache_data["metadata"] = metadata

        try:
            self._get_cache_path(key).write_text(
                json.dumps(cache_data, indent=2, default=str), encoding="utf-8"
            )
        except OSError as e:
            logger.warning(f"Failed to write cache entry: {e}")

    def delete(self, key: str) -> bool:
        """Delete cache entry; returns True if it existed."""
        cache_path = self._get_cache_path(key)
        if cache_path.exists():
            cache_path.unlink()
            return True
        return False

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries deleted
        """
        deleted = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                cache_file.unlink()
                deleted += 1
            except OSError as e:
                logger.warning(f"Could not delete cache entry {cache_file.name}: {e}")
        return deleted

    @staticmethod
    def make_key(
        stage: str,
        request: Any,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """
        Build the cache key for a stage request.

        Args:
            stage: Stage name (e.g. "suggest_survey")
            request: JSON-serializable request payload
            provider: Optional provider name
            model: Optional model name

        Returns:
            Cache key string
        """
        key_parts = [stage, provider or "", model or ""]
        key_parts.append(json.dumps(request, sort_keys=True, default=str))
        return "|".join(key_parts)
