"""
Two-tier menu cache
Keeps the raw page snapshot next to the parsed menu derived from it
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
import weakref
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import quote

from mensa_common import config
from mensa_common.models import CacheEntry, CacheKey, DayMenu
from mensa_common.parser import parse_menu


logger = logging.getLogger(__name__)

Extractor = Callable[[str, str], DayMenu]


def cache_filename(key: CacheKey) -> str:
    """
    File name stem for a cache key

    Percent-quoting is injective, and '=' and '&' are kept so the name
    still reads as the query string.
    """
    return quote(str(key), safe='=&')


def raw_digest(raw: str) -> str:
    """Digest tying a parsed menu to the raw snapshot it was derived from"""
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()


class KeyLock:
    """Lock for one cache key; unlike threading.Lock it can be weakly referenced"""

    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._lock.release()


class CacheStore:
    """
    Base cache store holding the reconcile logic

    Subclasses provide storage for one (raw, structured) pair per key via
    _load_raw, _load_structured and _write_pair. The structured artifact
    records the digest of the raw snapshot it came from, and a pair whose
    digests disagree is treated as absent. Within a process, reads and
    writes of one key are also serialised through a per-key lock.
    """

    def __init__(self, extractor: Extractor = parse_menu):
        self.extractor = extractor
        # Locks live only while some caller holds them
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: CacheKey) -> KeyLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = KeyLock()
                self._locks[key] = lock
            return lock

    def _load_raw(self, key: CacheKey) -> Optional[str]:
        raise NotImplementedError

    def _load_structured(self, key: CacheKey) -> Optional[Tuple[DayMenu, str]]:
        """Stored menu and the digest of the raw snapshot it was parsed from"""
        raise NotImplementedError

    def _write_pair(self, entry: CacheEntry):
        raise NotImplementedError

    def _load_entry(self, key: CacheKey) -> Optional[CacheEntry]:
        loaded = self._load_structured(key)
        if loaded is None:
            return None
        structured, digest = loaded

        raw = self._load_raw(key)
        if raw is None:
            # A structured entry is only trusted with its raw snapshot
            logger.warning("Structured cache for %s has no raw snapshot, ignoring it", key)
            return None
        if raw_digest(raw) != digest:
            logger.warning("Structured cache for %s was derived from another snapshot, ignoring it", key)
            return None

        return CacheEntry(key=key, raw=raw, structured=structured)

    def read(self, key: CacheKey) -> Optional[CacheEntry]:
        """Stored entry for key, or None. Never touches the network."""
        with self._lock_for(key):
            return self._load_entry(key)

    def reconcile(self, key: CacheKey, fresh_raw: str) -> DayMenu:
        """
        Bring the cache in line with a freshly fetched page

        If the stored raw snapshot equals fresh_raw, the stored menu is
        returned without parsing. Otherwise fresh_raw is parsed and both
        artifacts are replaced together. A parse failure propagates and
        leaves the previous entry untouched.

        Args:
            key: Cache key of the fetched page
            fresh_raw: Page body just fetched for key

        Returns:
            DayMenu for key
        """
        with self._lock_for(key):
            entry = self._load_entry(key)
            if entry is not None and entry.raw == fresh_raw:
                logger.debug("Cache for %s is up to date", key)
                return entry.structured

            menu = self.extractor(fresh_raw, key.date)
            self._write_pair(CacheEntry(key=key, raw=fresh_raw, structured=menu))
            logger.info("Cache for %s %s", key, 'updated' if entry else 'created')
            return menu


class MemoryCacheStore(CacheStore):
    """In-memory store, for tests and short-lived embedding"""

    def __init__(self, extractor: Extractor = parse_menu):
        super().__init__(extractor)
        self._entries: Dict[CacheKey, Tuple[str, Dict]] = {}

    def _load_raw(self, key: CacheKey) -> Optional[str]:
        if key not in self._entries:
            return None
        return self._entries[key][0]

    def _load_structured(self, key: CacheKey) -> Optional[Tuple[DayMenu, str]]:
        if key not in self._entries:
            return None
        raw, menu = self._entries[key]
        # Stored serialised so callers cannot mutate the cached menu
        return DayMenu.from_dict(menu), raw_digest(raw)

    def _write_pair(self, entry: CacheEntry):
        self._entries[entry.key] = (entry.raw, entry.structured.to_dict())


class FileCacheStore(CacheStore):
    """
    Store on disk: raw snapshots under <cache_dir>/raw/<key>.html and
    parsed menus under <cache_dir>/parsed/<key>.json
    """

    def __init__(self, cache_dir: Path = config.CACHE_DIR, extractor: Extractor = parse_menu):
        super().__init__(extractor)
        self.cache_dir = Path(cache_dir)
        self.raw_dir = self.cache_dir / config.RAW_SUBDIR
        self.parsed_dir = self.cache_dir / config.PARSED_SUBDIR

    def raw_path(self, key: CacheKey) -> Path:
        return self.raw_dir / f"{cache_filename(key)}.html"

    def parsed_path(self, key: CacheKey) -> Path:
        return self.parsed_dir / f"{cache_filename(key)}.json"

    def _load_raw(self, key: CacheKey) -> Optional[str]:
        raw_file = self.raw_path(key)
        if not raw_file.exists():
            return None
        try:
            # newline='' keeps the snapshot byte-for-byte comparable
            with open(raw_file, 'r', encoding='utf-8', newline='') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Unreadable raw cache %s: %s", raw_file, e)
            return None

    def _load_structured(self, key: CacheKey) -> Optional[Tuple[DayMenu, str]]:
        parsed_file = self.parsed_path(key)
        if not parsed_file.exists():
            return None
        try:
            with open(parsed_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)
            return DayMenu.from_dict(cached['menu']), cached['raw_sha256']
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable parsed cache %s: %s", parsed_file, e)
            return None

    def _write_pair(self, entry: CacheEntry):
        self.raw_dir.mkdir(parents=True, exist_ok=True)
        self.parsed_dir.mkdir(parents=True, exist_ok=True)

        cache_data = {
            'key': str(entry.key),
            'raw_sha256': raw_digest(entry.raw),
            'menu': entry.structured.to_dict()
        }

        raw_tmp = self._write_temp(self.raw_dir, entry.raw, newline='')
        try:
            parsed_tmp = self._write_temp(self.parsed_dir, json.dumps(cache_data, ensure_ascii=False, indent=2))
        except BaseException:
            os.unlink(raw_tmp)
            raise

        # Parsed goes in first: until the raw file follows, the digests
        # disagree and readers see a miss instead of a stale menu
        pending = [raw_tmp, parsed_tmp]
        try:
            os.replace(parsed_tmp, self.parsed_path(entry.key))
            pending.remove(parsed_tmp)
            os.replace(raw_tmp, self.raw_path(entry.key))
            pending.remove(raw_tmp)
        finally:
            for tmp_path in pending:
                os.unlink(tmp_path)

    @staticmethod
    def _write_temp(directory: Path, content: str, newline: Optional[str] = None) -> str:
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with open(fd, 'w', encoding='utf-8', newline=newline) as f:
                f.write(content)
        except BaseException:
            os.unlink(tmp_path)
            raise
        return tmp_path
