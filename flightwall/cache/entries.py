"""Cache entry representation shared by all storage tiers."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class CacheEntry:
    """A stored response bound to a synthetic cache key."""

    payload: dict[str, Any]
    ttl: int
    status: int = 200
    found: bool = True
    verified: bool = False
    provider: str | None = None
    stored_at: float = field(default_factory=time.time)

    @property
    def positive(self) -> bool:
        return self.found and self.status == 200

    def age(self, now: float | None = None) -> float:
        return max(0.0, (now if now is not None else time.time()) - self.stored_at)

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            payload=data["payload"],
            ttl=int(data["ttl"]),
            status=int(data.get("status", 200)),
            found=bool(data.get("found", True)),
            verified=bool(data.get("verified", False)),
            provider=data.get("provider"),
            stored_at=float(data.get("stored_at", 0.0)),
        )


__all__ = ["CacheEntry"]
