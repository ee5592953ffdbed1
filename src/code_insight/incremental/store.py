"""
Persistent result cache for incremental analysis.

Uses diskcache with its default pickle serialization, so payloads read back
equal to what was written. Two namespaces share one root:

    <root>/          whole-run result sets, keyed by revision id
    <root>/files/    per-file content digests, keyed by an escaped path token

Every failure degrades to a cache miss: reads return None and writes
return False. The caller then re-derives the result.
"""

import pickle
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePath
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

from diskcache import Cache

from ..exceptions import CacheCorruptionError, CacheIOError, ErrorCode, ErrorReporter
from ..logging_config import get_logger

logger = get_logger(__name__)

FILES_NAMESPACE = "files"

_WRITTEN_AT = "written_at"
_PAYLOAD = "payload"


@dataclass(frozen=True)
class CacheEntry:
    """A stored payload and when it was written."""

    key: str
    payload: Any
    written_at: datetime


def path_token(relative_path: Union[str, PurePath]) -> str:
    """Flat cache token for a file path.

    Path separators are percent-escaped, so tokens never imply
    subdirectories and distinct paths never share a token
    ("a/b.py" and "a_b.py" stay distinct).
    """
    text = str(relative_path).replace("\\", "/")
    return quote(text, safe="")


class ResultCacheStore:
    """
    diskcache-backed store for analysis result sets and file digests.

    Features:
    - Last-write-wins puts; no versioning
    - Optional TTL (default: entries persist until cleared)
    - Corrupt or unreadable entries read as misses
    - Thread- and process-safe through diskcache's SQLite index
    """

    def __init__(
        self,
        root: Union[str, Path],
        ttl_seconds: Optional[int] = None,
        reporter: Optional[ErrorReporter] = None,
    ):
        """
        Open (creating if needed) the store at ``root``.

        Args:
            root: Cache root directory
            ttl_seconds: Entry lifetime in seconds (None = no expiry)
            reporter: Receives recoverable I/O and serialization errors
        """
        self.root = Path(root)
        self.ttl_seconds = ttl_seconds
        self.reporter = reporter if reporter is not None else ErrorReporter(logger)

        self._runs: Optional[Cache] = None
        self._files: Optional[Cache] = None
        try:
            self._runs = Cache(str(self.root))
            self._files = Cache(str(self.root / FILES_NAMESPACE))
            logger.debug("Result cache opened at %s (ttl=%s)", self.root, self.ttl_seconds)
        except Exception as e:
            self.close()
            self._runs = None
            self._files = None
            self.reporter.report(
                CacheIOError(
                    "Cache directory unavailable; caching disabled",
                    ErrorCode.IC203,
                    context={"root": str(self.root), "error": str(e)},
                    recovery_hint="Check permissions on the cache directory",
                )
            )

    @property
    def enabled(self) -> bool:
        return self._runs is not None and self._files is not None

    # ── Run namespace ────────────────────────────────────────────────

    def put(self, key: str, payload: Any) -> bool:
        """Store ``payload`` under revision ``key``, replacing any previous entry.

        Returns:
            True if written, False if the write failed
        """
        return self._write(self._runs, key, payload)

    def get(self, key: str) -> Optional[Any]:
        """Payload stored under ``key``, or None if absent, expired or corrupt."""
        entry = self._read(self._runs, key)
        return entry.payload if entry is not None else None

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._read(self._runs, key)

    def contains(self, key: str) -> bool:
        return self.get_entry(key) is not None

    def delete(self, key: str) -> bool:
        if self._runs is None:
            return False
        try:
            return bool(self._runs.delete(key))
        except Exception as e:
            self._report_io(ErrorCode.IC202, "Cache delete failed", key, e)
            return False

    # ── File-digest namespace ────────────────────────────────────────

    def put_digest(self, token: str, digest: str) -> bool:
        return self._write(self._files, token, digest)

    def get_digest(self, token: str) -> Optional[str]:
        entry = self._read(self._files, token)
        if entry is None:
            return None
        if not isinstance(entry.payload, str):
            self._report_corrupt(token, f"digest is {type(entry.payload).__name__}")
            return None
        return entry.payload

    def delete_digest(self, token: str) -> bool:
        if self._files is None:
            return False
        try:
            return bool(self._files.delete(token))
        except Exception as e:
            self._report_io(ErrorCode.IC202, "Digest delete failed", token, e)
            return False

    # ── Maintenance ──────────────────────────────────────────────────

    def clear(self) -> None:
        """Remove every entry from both namespaces."""
        if not self.enabled:
            return
        try:
            self._runs.clear()
            self._files.clear()
            logger.info("Result cache cleared")
        except Exception as e:
            self._report_io(ErrorCode.IC202, "Cache clear failed", "*", e)

    def stats(self) -> Dict[str, Any]:
        """Entry counts and disk usage."""
        if not self.enabled:
            return {"enabled": False, "directory": str(self.root)}

        try:
            return {
                "enabled": True,
                "directory": self._runs.directory,
                "runs": len(self._runs),
                "files": len(self._files),
                "volume": self._runs.volume() + self._files.volume(),
            }
        except Exception as e:
            logger.warning("Cache stats failed: %s", e)
            return {"enabled": True, "directory": str(self.root), "error": str(e)}

    def close(self) -> None:
        for cache in (self._runs, self._files):
            if cache is not None:
                cache.close()

    def __enter__(self) -> "ResultCacheStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── Internals ────────────────────────────────────────────────────

    def _write(self, cache: Optional[Cache], key: str, payload: Any) -> bool:
        if cache is None:
            return False

        record = {
            _WRITTEN_AT: datetime.now(timezone.utc).isoformat(),
            _PAYLOAD: payload,
        }
        try:
            cache.set(key, record, expire=self.ttl_seconds)
        except (TypeError, AttributeError, pickle.PicklingError) as e:
            self.reporter.report(
                CacheCorruptionError(
                    "Payload cannot be pickled; not cached",
                    ErrorCode.IC301,
                    context={"key": key, "error": str(e)},
                )
            )
            return False
        except Exception as e:
            self._report_io(ErrorCode.IC202, "Cache write failed", key, e)
            return False

        logger.debug("Cache set: %s", key)
        return True

    def _read(self, cache: Optional[Cache], key: str) -> Optional[CacheEntry]:
        if cache is None:
            return None

        try:
            record = cache.get(key)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, ValueError) as e:
            self._report_corrupt(key, str(e))
            return None
        except Exception as e:
            self._report_io(ErrorCode.IC201, "Cache read failed", key, e)
            return None

        if record is None:
            return None

        if not isinstance(record, dict) or _PAYLOAD not in record or _WRITTEN_AT not in record:
            self._report_corrupt(key, "unexpected record layout")
            return None

        try:
            written_at = datetime.fromisoformat(record[_WRITTEN_AT])
        except (TypeError, ValueError):
            self._report_corrupt(key, "bad timestamp")
            return None

        logger.debug("Cache hit: %s", key)
        return CacheEntry(key=key, payload=record[_PAYLOAD], written_at=written_at)

    def _report_io(self, code: ErrorCode, message: str, key: str, error: Exception) -> None:
        self.reporter.report(
            CacheIOError(message, code, context={"key": key, "error": str(error)})
        )

    def _report_corrupt(self, key: str, reason: str) -> None:
        self.reporter.report(
            CacheCorruptionError(
                "Corrupt cache entry treated as a miss",
                ErrorCode.IC300,
                context={"key": key, "reason": reason},
            )
        )
