"""
Two-Tier Embedding Cache

Avoids redundant embedding provider calls by caching vectors keyed on a
64-bit hash of (text, model).

Tiers:
- HotStore: bounded in-memory map with LRU eviction
- DurableStore: one JSON file per entry under a cache directory

The durable store is the source of truth; the hot store is populated
lazily on reads and eagerly on writes.

Consistency contract: ``clear_old`` prunes only the durable store. An entry
expired on disk can still be served from memory until it is evicted or the
process restarts.

Usage:
    from core.embedding_cache import EmbeddingCache

    cache = EmbeddingCache(Path("~/.docretrieval/embeddings").expanduser())
    vec = cache.get("some text", "all-MiniLM-L6-v2")
    if vec is None:
        vec = provider.embed(["some text"])[0]
        cache.put("some text", "all-MiniLM-L6-v2", vec)
"""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import CacheIOError, CacheSerializationError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
DEFAULT_MAX_MEMORY_ENTRIES = 1000
DEFAULT_MAX_AGE_DAYS = 30
CACHE_FILE_SUFFIX = ".json"


@dataclass
class CacheEntry:
    """A cached embedding as persisted on disk."""
    text_hash: int
    embedding: List[float]
    model: str
    timestamp: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        try:
            return cls(
                text_hash=int(data["text_hash"]),
                embedding=[float(x) for x in data["embedding"]],
                model=str(data["model"]),
                timestamp=int(data["timestamp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"malformed cache entry: {e}") from e


def hash_text(text: str, model: str) -> int:
    """
    Stable 64-bit hash of a (text, model) pair.

    Uses the first 8 bytes of SHA-256 so keys survive process restarts.
    """
    digest = hashlib.sha256()
    digest.update(text.encode("utf-8"))
    digest.update(b"\x00")
    digest.update(model.encode("utf-8"))
    return int.from_bytes(digest.digest()[:8], "big")


# =============================================================================
# Hot Store (memory)
# =============================================================================

class HotStore:
    """
    Bounded in-memory embedding map.

    Evicts least recently used entries once ``capacity`` is exceeded.
    """

    def __init__(self, capacity: int = DEFAULT_MAX_MEMORY_ENTRIES):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: "OrderedDict[int, List[float]]" = OrderedDict()

    def get(self, key: int) -> Optional[List[float]]:
        embedding = self._entries.get(key)
        if embedding is not None:
            self._entries.move_to_end(key)
        return embedding

    def put(self, key: int, embedding: List[float]) -> int:
        """Insert or refresh an entry. Returns the number of evicted entries."""
        self._entries[key] = embedding
        self._entries.move_to_end(key)
        return self._evict()

    def discard(self, key: int):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def keys(self) -> List[int]:
        """Keys from least to most recently used."""
        return list(self._entries)

    def _evict(self) -> int:
        overflow = len(self._entries) - self.capacity
        for _ in range(max(overflow, 0)):
            self._entries.popitem(last=False)
        return max(overflow, 0)

    def __contains__(self, key: int) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Durable Store (disk)
# =============================================================================

class DurableStore:
    """
    One JSON file per cache entry, named by the hex form of the hash.

    No file locking: concurrent writers of the same key race and the last
    writer wins.
    """

    def __init__(self, cache_dir: Union[str, Path]):
        self.cache_dir = Path(cache_dir)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(
                f"Could not create cache directory: {e}", path=str(self.cache_dir)
            ) from e

    def path_for(self, key: int) -> Path:
        return self.cache_dir / f"{key:016x}{CACHE_FILE_SUFFIX}"

    def read(self, key: int) -> Optional[CacheEntry]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return self._load(path)

    def write(self, entry: CacheEntry):
        path = self.path_for(entry.text_hash)
        try:
            payload = json.dumps(entry.to_dict())
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(
                f"Could not encode cache entry: {e}", path=str(path)
            ) from e
        try:
            path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise CacheIOError(f"Could not write cache file: {e}", path=str(path)) from e

    def remove(self, key: int) -> bool:
        return self.unlink(self.path_for(key))

    def entries(self) -> Iterator[Tuple[Path, Optional[CacheEntry]]]:
        """
        Iterate over (path, entry) pairs for every cache file.

        Files that cannot be read or decoded yield ``None`` in place of the
        entry. Non-file paths matching the suffix are skipped.
        """
        try:
            paths = sorted(self.cache_dir.glob(f"*{CACHE_FILE_SUFFIX}"))
        except OSError as e:
            raise CacheIOError(
                f"Could not list cache directory: {e}", path=str(self.cache_dir)
            ) from e

        for path in paths:
            if not path.is_file():
                logger.warning(f"Skipping non-file in cache directory: {path.name}")
                continue
            try:
                yield path, self._load(path)
            except (CacheIOError, CacheSerializationError):
                yield path, None

    def _load(self, path: Path) -> CacheEntry:
        try:
            contents = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheIOError(f"Could not read cache file: {e}", path=str(path)) from e
        try:
            return CacheEntry.from_dict(json.loads(contents))
        except (ValueError, AttributeError) as e:
            raise CacheSerializationError(
                f"Could not decode cache file: {e}", path=str(path)
            ) from e

    def unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheIOError(f"Could not delete cache file: {e}", path=str(path)) from e
        return True

    def __len__(self) -> int:
        return sum(1 for p in self.cache_dir.glob(f"*{CACHE_FILE_SUFFIX}") if p.is_file())


# =============================================================================
# Cache Facade
# =============================================================================

class EmbeddingCache:
    """
    Content-addressed embedding cache over a hot and a durable store.

    Never calls an embedding provider itself; a miss returns ``None`` and
    the caller decides what to do.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        max_memory_entries: int = DEFAULT_MAX_MEMORY_ENTRIES,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory for durable entries (created if missing)
            max_memory_entries: Capacity of the in-memory tier
            max_age_days: Retention used by clear_expired()
        """
        self.max_age_days = max_age_days
        self.hot = HotStore(max_memory_entries)
        self.durable = DurableStore(cache_dir)
        self._stats = {"memory_hits": 0, "disk_hits": 0, "misses": 0, "evictions": 0}

    @classmethod
    def from_config(cls, config) -> "EmbeddingCache":
        """Create a cache from a CacheConfig section."""
        return cls(
            Path(config.cache_dir).expanduser(),
            config.max_memory_entries,
            config.max_age_days,
        )

    @property
    def cache_dir(self) -> Path:
        return self.durable.cache_dir

    @staticmethod
    def hash_text(text: str, model: str) -> int:
        return hash_text(text, model)

    def get(self, text: str, model: str) -> Optional[List[float]]:
        """
        Look up a cached embedding.

        Args:
            text: Text that was embedded
            model: Embedding model name

        Returns:
            The embedding, or None on a miss

        Raises:
            CacheIOError: If the cache file exists but cannot be read
            CacheSerializationError: If the cache file is malformed
        """
        key = hash_text(text, model)

        embedding = self.hot.get(key)
        if embedding is not None:
            self._stats["memory_hits"] += 1
            return list(embedding)

        entry = self.durable.read(key)
        if entry is None:
            self._stats["misses"] += 1
            return None

        self._stats["disk_hits"] += 1
        self._stats["evictions"] += self.hot.put(key, entry.embedding)
        return list(entry.embedding)

    def put(self, text: str, model: str, embedding: Sequence[float]):
        """
        Store an embedding in both tiers.

        The disk file is overwritten unconditionally and stamped with the
        current time.
        """
        key = hash_text(text, model)
        values = [float(x) for x in embedding]

        self._stats["evictions"] += self.hot.put(key, values)
        self.durable.write(CacheEntry(
            text_hash=key,
            embedding=values,
            model=model,
            timestamp=int(time.time()),
        ))

    def clear_old(self, days: int) -> int:
        """
        Delete durable entries older than ``days`` days.

        The in-memory tier is left untouched.

        Returns:
            Number of files removed
        """
        cutoff = int(time.time()) - days * SECONDS_PER_DAY
        removed = 0

        for path, entry in self.durable.entries():
            if entry is None:
                logger.warning(f"Skipping unreadable cache file: {path.name}")
                continue
            if entry.timestamp < cutoff:
                if self.durable.unlink(path):
                    removed += 1

        logger.info(f"Removed {removed} cache entries older than {days} days")
        return removed

    def clear_expired(self) -> int:
        """Apply clear_old() with the configured ``max_age_days``."""
        return self.clear_old(self.max_age_days)

    def stats(self) -> Dict[str, int]:
        """Hit/miss counters and the current memory tier size."""
        return {**self._stats, "memory_entries": len(self.hot)}
