"""Process-local cache of rendered navigation trees, keyed by role key."""
import copy
import logging
import threading
from typing import Any, Dict, List, Optional

from hrm_authz.core.config import settings

logger = logging.getLogger(__name__)


class MenuTreeCache:
    """Thread-safe role_key -> menu tree cache.

    Entries are deep-copied on the way in and out so callers can never mutate
    a cached tree. Every invalidation bumps ``generation``; a tree rendered
    before that bump is not stored.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._entries: Dict[str, List[dict]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, role_key: str) -> Optional[List[dict]]:
        if not self.enabled:
            return None
        with self._lock:
            tree = self._entries.get(role_key)
        return copy.deepcopy(tree) if tree is not None else None

    def set(self, role_key: str, tree: List[dict], generation: Optional[int] = None) -> bool:
        """Store ``tree`` unless an invalidation happened after ``generation`` was read."""
        if not self.enabled:
            return False
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Discarded stale menu tree for %s", role_key)
                return False
            self._entries[role_key] = copy.deepcopy(tree)
        return True

    def invalidate(self, *role_keys: str) -> None:
        with self._lock:
            self._generation += 1
            for role_key in role_keys:
                self._entries.pop(role_key, None)
        if role_keys:
            logger.debug("Invalidated menu cache for %s", ", ".join(role_keys))

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
        logger.debug("Cleared menu cache")

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"enabled": self.enabled, "generation": self._generation, "entries": sorted(self._entries)}


menu_cache = MenuTreeCache(enabled=settings.MENU_CACHE_ENABLED)
