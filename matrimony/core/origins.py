"""Allowed CORS origins, loaded through a refreshable cache"""
import logging
import re
import threading
import time
from typing import Callable, List, Optional, Pattern, Tuple

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

from matrimony.core.config import settings

logger = logging.getLogger(__name__)

REGEX_PREFIX = "regex:"


def origins_from_settings() -> List[str]:
    """Comma-separated ALLOWED_ORIGINS; entries starting with ``regex:`` are patterns"""
    return [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]


class AllowedOriginsCache:
    """
    Read-through cache over an origin *loader*.

    Entries are reloaded on the first lookup after *ttl* seconds, or on an
    explicit :meth:`refresh`. A failing loader keeps the last good list.
    """

    def __init__(self, loader: Callable[[], List[str]], ttl: float = 300.0, clock=time.monotonic):
        self._loader = loader
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._exact: frozenset = frozenset()
        self._patterns: Tuple[Pattern, ...] = ()
        self._loaded_at: Optional[float] = None

    def refresh(self) -> None:
        try:
            entries = list(self._loader())
        except Exception as exc:
            logger.error(f"Could not reload allowed origins, keeping previous list: {exc}")
            with self._lock:
                self._loaded_at = self._clock()
            return

        exact = {e for e in entries if not e.startswith(REGEX_PREFIX)}
        patterns = tuple(re.compile(e[len(REGEX_PREFIX):]) for e in entries if e.startswith(REGEX_PREFIX))
        with self._lock:
            self._exact = frozenset(exact)
            self._patterns = patterns
            self._loaded_at = self._clock()

    def _ensure_fresh(self) -> None:
        loaded_at = self._loaded_at
        if loaded_at is None or self._clock() - loaded_at >= self._ttl:
            self.refresh()

    def get(self) -> List[str]:
        self._ensure_fresh()
        return sorted(self._exact) + [REGEX_PREFIX + p.pattern for p in self._patterns]

    def is_allowed(self, origin: str) -> bool:
        self._ensure_fresh()
        if origin in self._exact:
            return True
        return any(p.fullmatch(origin) for p in self._patterns)


class CachedOriginsCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose origin check is delegated to an AllowedOriginsCache"""

    def __init__(self, app: ASGIApp, origins: AllowedOriginsCache, **kwargs):
        super().__init__(app, allow_origins=(), **kwargs)
        self.origins = origins

    def is_allowed_origin(self, origin: str) -> bool:
        return self.origins.is_allowed(origin)
