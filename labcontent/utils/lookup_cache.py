"""
Run-scoped cache for external lookup results
Passed into and returned from each enrichment call instead of living at module level
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional
from loguru import logger


class LookupCache:
    """
    Key-value store for API responses within one pipeline run.
    Failed lookups are remembered as {"error": ...} so they are not repeated.
    """

    def __init__(self, entries: Optional[Dict[str, Any]] = None):
        self.entries: Dict[str, Any] = dict(entries or {})
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(namespace: str, value: str) -> str:
        return f"{namespace}:{' '.join((value or '').lower().split())}"

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None for unknown keys and remembered failures"""
        if key in self.entries:
            value = self.entries[key]
            if isinstance(value, dict) and "error" in value:
                self.misses += 1
                logger.debug(f"Cache hit (failed lookup) for {key[:60]}")
                return None
            self.hits += 1
            logger.debug(f"Cache hit for {key[:60]}")
            return value

        self.misses += 1
        return None

    def set(self, key: str, value: Any):
        self.entries[key] = value

    def set_error(self, key: str, error: Any):
        self.entries[key] = {"error": str(error)}

    def get_stats(self) -> Dict[str, Any]:
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "size": len(self.entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate:.2f}%",
        }

    @classmethod
    def load(cls, path: Path) -> "LookupCache":
        path = Path(path)
        if not path.exists():
            return cls()

        with path.open(encoding="utf-8") as f:
            entries = json.load(f)
        logger.info(f"Lookup cache: {len(entries)} entries from {path}")
        return cls(entries)

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.entries, f, ensure_ascii=False, indent=2)
