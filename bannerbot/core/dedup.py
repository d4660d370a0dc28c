"""Duplicate suppression for delivered banner images."""

from __future__ import annotations

import hashlib
from collections import deque
from typing import Optional

from .logger import log
from .models import BannerIdentity


def content_hash(image_bytes: bytes) -> str:
    """Fixed-length digest of the raw image bytes (exact match only)."""
    return hashlib.sha256(image_bytes).hexdigest()


class DedupCache:
    """Bounded FIFO of recent image hashes plus a per-identity last-label memo.

    ``is_duplicate`` is a membership test followed, only on a miss, by an
    insert that evicts the oldest hash beyond capacity.
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError("Dedup capacity must be at least 1")
        self.capacity = capacity
        self._hashes: deque[str] = deque(maxlen=capacity)
        self._last_sent: dict[BannerIdentity, Optional[str]] = {
            identity: None for identity in BannerIdentity
        }

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, image_hash: str) -> bool:
        return image_hash in self._hashes

    @property
    def hashes(self) -> list[str]:
        """Hashes from oldest to newest."""
        return list(self._hashes)

    def last_sent(self, identity: BannerIdentity) -> Optional[str]:
        return self._last_sent[identity]

    def is_duplicate(self, image_bytes: bytes) -> bool:
        """Return True if the image was seen recently; otherwise remember it."""
        image_hash = content_hash(image_bytes)
        if image_hash in self._hashes:
            log.info(f"Duplicate image detected ({image_hash[:12]})")
            return True

        self._hashes.append(image_hash)
        return False

    def should_suppress_by_identity(self, identity: BannerIdentity, label: str) -> bool:
        return self._last_sent[identity] == label

    def record_sent(self, identity: BannerIdentity, label: str) -> None:
        self._last_sent[identity] = label

    def reset_identities(self) -> None:
        """Forget the per-identity labels, keeping the hash history."""
        for identity in self._last_sent:
            self._last_sent[identity] = None

    def reset(self) -> None:
        """Forget all hashes and per-identity labels."""
        self._hashes.clear()
        self.reset_identities()
