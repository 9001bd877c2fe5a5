"""
Table metadata cache.

Declared column types read from `PRAGMA table_info` are kept per session
and table, so result decoding does not query the catalog for every
statement. Entries expire on their own (cachetools TTLCache); a session
drops its entries on close and a table's entries are dropped when it is
created.
"""
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)

TABLE_INFO_MAXSIZE = 50
TABLE_INFO_TTL = 600


class Cache:
    """Process-wide registry of per-session table info caches.
    """

    _instance = None
    _lock = threading.RLock()

    def __init__(self) -> None:
        self._sessions: dict[int, cachetools.TTLCache] = {}

    @classmethod
    def get_instance(cls) -> 'Cache':
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def table_info(self, session_id: int) -> cachetools.TTLCache:
        """Declared types by lower-cased table name for one session."""
        with self._lock:
            cache = self._sessions.get(session_id)
            if cache is None:
                cache = cachetools.TTLCache(maxsize=TABLE_INFO_MAXSIZE, ttl=TABLE_INFO_TTL)
                self._sessions[session_id] = cache
            return cache

    def forget_session(self, session_id: int) -> None:
        with self._lock:
            cache = self._sessions.pop(session_id, None)
        if cache:
            logger.debug(f'Dropped table info for {len(cache)} tables of session {session_id}')

    def forget_table(self, table: str) -> None:
        """Drop a table's entries from every session."""
        key = table.lower()
        with self._lock:
            for session_id, cache in self._sessions.items():
                if cache.pop(key, None) is not None:
                    logger.debug(f'Dropped table info for {table} in session {session_id}')

    def clear_all(self) -> None:
        with self._lock:
            self._sessions.clear()


def get_table_info_cache(session_id: int) -> cachetools.TTLCache:
    return Cache.get_instance().table_info(session_id)
