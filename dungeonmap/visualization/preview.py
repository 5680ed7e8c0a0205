"""Replaceable in-memory cache of the latest rendered preview."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from PIL import Image

__all__ = ["PreviewCache", "PreviewSnapshot"]


@dataclass(frozen=True)
class PreviewSnapshot:
    """An image together with what it shows and when it was produced."""

    image: Image.Image
    kind: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PreviewCache:
    """Hold the most recent preview for readers on any thread.

    ``publish`` swaps the snapshot reference in a single assignment, so
    ``current`` never needs the lock and always returns a complete snapshot.
    Publishers are serialised among themselves.
    """

    __slots__ = ("_snapshot", "_lock")

    def __init__(self) -> None:
        self._snapshot: Optional[PreviewSnapshot] = None
        self._lock = threading.Lock()

    def publish(self, image: Image.Image, *, kind: str = "preview") -> PreviewSnapshot:
        snapshot = PreviewSnapshot(image=image.copy(), kind=kind)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def current(self) -> Optional[PreviewSnapshot]:
        return self._snapshot

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
