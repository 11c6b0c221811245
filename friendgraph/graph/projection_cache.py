"""
Caching of graph projections.

A projection is a pure function of the store contents, so the projection built
from a store revision stays valid until the revision moves on. Only the newest
one is worth keeping.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..models import GraphProjection

logger = logging.getLogger(__name__)


class ProjectionCache:
    """Thread-safe single-slot cache of the latest projection."""

    def __init__(self) -> None:
        self._revision: int | None = None
        self._projection: GraphProjection | None = None
        self._lock = threading.Lock()
        self._hit_count = 0
        self._miss_count = 0

    def get(self, revision: int) -> GraphProjection | None:
        """The cached projection if it was built from ``revision``."""
        with self._lock:
            if self._projection is not None and self._revision == revision:
                self._hit_count += 1
                logger.debug(f"Cache hit for revision {revision}")
                return self._projection.model_copy(deep=True)

            self._miss_count += 1
            logger.debug(f"Cache miss for revision {revision}")
            return None

    def put(self, revision: int, projection: GraphProjection) -> None:
        """Keep ``projection`` unless a newer revision is already cached."""
        with self._lock:
            if self._revision is not None and revision < self._revision:
                logger.debug(f"Not caching revision {revision}, holding {self._revision}")
                return
            self._revision = revision
            self._projection = projection.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._revision = None
            self._projection = None

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with self._lock:
            total_requests = self._hit_count + self._miss_count
            hit_rate = self._hit_count / total_requests if total_requests > 0 else 0.0

            return {
                "revision": self._revision,
                "hit_count": self._hit_count,
                "miss_count": self._miss_count,
                "hit_rate": round(hit_rate, 3),
                "total_requests": total_requests,
            }
