"""Record limiter — offset/limit/tail windows over arrays and maps."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class LimiterError(ValueError):
    pass


@dataclass(frozen=True)
class LimiterConfig:
    limit: int = 0
    offset: int = 0
    tail: int = 0

    def validate(self) -> None:
        for name in ("limit", "offset", "tail"):
            value = getattr(self, name)
            if value < 0:
                raise LimiterError(f"--{name} must be non-negative, got {value}")
        if self.limit > 0 and self.tail > 0:
            raise LimiterError("--limit and --tail are mutually exclusive")

    def is_active(self) -> bool:
        return self.limit > 0 or self.offset > 0 or self.tail > 0

    def window(self, length: int) -> tuple[int, int]:
        """Half-open [start, end) bounds for a sequence of the given length."""
        if self.tail > 0:
            return max(0, length - self.tail), length
        start = min(self.offset, length)
        end = min(start + self.limit, length) if self.limit > 0 else length
        return start, end

    def apply(self, data: Any) -> Any:
        """Window a list, or a map by sorted key; scalars pass through."""
        if isinstance(data, list):
            start, end = self.window(len(data))
            return data[start:end]
        if isinstance(data, dict):
            keys = sorted(data)
            start, end = self.window(len(keys))
            return {k: data[k] for k in keys[start:end]}
        return data
