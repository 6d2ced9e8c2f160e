"""
MemoTap Backend — Gemini API Key Pool
=======================================

What:  Owns the configured Gemini API keys, the currently selected key and
       the set of keys that have hit their quota.
How:   Keys keep the index they were configured with. A single cursor points
       at the key every request should use; a quota failure marks that key
       failed and moves the cursor to the next usable key, searching
       circularly from just after the failed one.
Who:   Built once in the application lifespan from settings.gemini_api_keys
       and handed to the ExtractionPipeline. Tests build their own pools.
When:  Read before every Gemini call; mutated only when a call fails with a
       quota/rate-limit error.

State Machine (per key):
    AVAILABLE ──quota error──▶ FAILED   (terminal for the process lifetime)

Pool invariant:
    The cursor always points at an AVAILABLE key unless every key is FAILED.
    The pool never shrinks and failed keys are never healed automatically.

Thread Safety:
    Cursor and failed set are read and written under one threading.Lock, so a
    status() snapshot never mixes a new cursor with an old failed set. The
    lock is never held across an await.
"""

import logging
import threading
from typing import Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from app.exceptions import MemoTapError, PoolEmptyError, PoolExhaustedError

logger = logging.getLogger(__name__)


# ── Quota Error Classification ────────────────────────────────────────────
# Lowercase markers matched against the error text. Anything else (bad audio,
# invalid key, network failure) is fatal and must not consume a rotation.
RETRYABLE_ERROR_MARKERS = (
    "quota",
    "rate limit",
    "resource exhausted",
    "429",
    "too many requests",
)


def is_retryable_failure(error: BaseException) -> bool:
    """
    Decide whether a failed Gemini call should rotate to the next key.

    What:    Case-insensitive substring match of the error's text against
             RETRYABLE_ERROR_MARKERS.
    How:     Pure function over str(error) — no SDK types involved, so tests
             can pass plain Exception objects with canned messages.

    Returns:
        True for quota / rate-limit exhaustion, False for everything else.
        Our own MemoTapError subclasses are never retryable.
    """
    if not isinstance(error, BaseException) or isinstance(error, MemoTapError):
        return False
    text = str(error).lower()
    return any(marker in text for marker in RETRYABLE_ERROR_MARKERS)


class PoolStatus(BaseModel):
    """
    Read-only snapshot of the key pool for health checks and logs.

    `current` and `failed` are 1-based positions (key #1 is the first key in
    GEMINI_API_KEYS), matching how operators count their keys.
    """
    total: int = Field(description="Number of configured API keys")
    current: int = Field(description="1-based position of the key in use (0 if none configured)")
    failed: List[int] = Field(description="1-based positions of keys that hit their quota")
    available: int = Field(description="Keys still usable")

    model_config = {"frozen": True}


class CredentialPool:
    """
    Thread-safe pool of interchangeable Gemini API keys with failover.

    Operations:
        current_credential()   → key in use (raises when none usable)
        current_selection()    → (index, key) in use
        mark_current_failed()  → fail the key in use and rotate
        status()               → PoolStatus snapshot

    Example:
        pool = CredentialPool(["key-a", "key-b"])
        pool.current_credential()      # "key-a"
        pool.mark_current_failed()     # True, now on "key-b"
        pool.mark_current_failed()     # False, every key failed
        pool.current_credential()      # raises PoolExhaustedError
    """

    def __init__(self, credentials: Iterable[str]):
        self._credentials: Tuple[str, ...] = tuple(credentials)
        self._current_index = 0
        self._failed: Set[int] = set()
        self._lock = threading.Lock()

        logger.info("CredentialPool initialized with %d API key(s)", len(self._credentials))

    @classmethod
    def from_config(cls, raw: str) -> "CredentialPool":
        """
        Build a pool from a single key or a comma-separated list of keys.

        Blank entries and surrounding whitespace are dropped; order is kept.
        """
        return cls(key.strip() for key in (raw or "").split(",") if key.strip())

    def __len__(self) -> int:
        return len(self._credentials)

    def current_selection(self) -> Tuple[int, str]:
        """
        Return the (index, key) every new Gemini call should use.

        Raises:
            PoolEmptyError: No keys were configured.
            PoolExhaustedError: Every key has been marked failed.
        """
        with self._lock:
            if not self._credentials:
                raise PoolEmptyError()
            if len(self._failed) >= len(self._credentials):
                raise PoolExhaustedError(total_keys=len(self._credentials))
            return self._current_index, self._credentials[self._current_index]

    def current_credential(self) -> str:
        """Return the key in use. Same errors as current_selection()."""
        return self.current_selection()[1]

    def mark_current_failed(self, used_index: Optional[int] = None) -> bool:
        """
        Mark the key in use as failed and rotate to the next usable key.

        How:
            1. Add the current index to the failed set (no-op if already there)
            2. Scan indices current+1, current+2, ... wrapping around
            3. Move the cursor to the first index not in the failed set

        Args:
            used_index: Index of the key the caller's failing call actually
                used. When another request has already rotated away from it,
                that key is recorded as failed but the cursor stays where it
                is — the caller can simply retry with the new current key.

        Returns:
            True if a usable key is selected, False if every key is now
            failed (the cursor is left unchanged in that case).
        """
        with self._lock:
            total = len(self._credentials)
            if total == 0:
                return False

            if used_index is not None and used_index != self._current_index:
                if 0 <= used_index < total and used_index not in self._failed:
                    self._failed.add(used_index)
                    logger.warning(
                        "Gemini API key %d of %d exhausted (already rotated to key %d)",
                        used_index + 1,
                        total,
                        self._current_index + 1,
                    )
                return self._current_index not in self._failed

            failed_index = self._current_index
            if failed_index not in self._failed:
                self._failed.add(failed_index)
                logger.warning(
                    "Gemini API key %d of %d exhausted, rotating...", failed_index + 1, total
                )

            for step in range(1, total + 1):
                candidate = (failed_index + step) % total
                if candidate not in self._failed:
                    self._current_index = candidate
                    logger.info("Rotated to Gemini API key %d of %d", candidate + 1, total)
                    return True

            logger.error("All %d Gemini API keys have been exhausted", total)
            return False

    def status(self) -> PoolStatus:
        """Consistent snapshot of the pool; never mutates state."""
        with self._lock:
            total = len(self._credentials)
            return PoolStatus(
                total=total,
                current=self._current_index + 1 if total else 0,
                failed=sorted(index + 1 for index in self._failed),
                available=total - len(self._failed),
            )
