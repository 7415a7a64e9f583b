"""Immutable QR module grid."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

Coordinate = Tuple[int, int]

QUIET_ZONE = 4


@dataclass(frozen=True)
class QrMatrix:
    """Dark/light modules of a QR symbol, without the quiet zone.

    ``modules[y][x]`` is ``True`` for a dark module.
    """

    modules: Tuple[Tuple[bool, ...], ...]
    version: int

    def __post_init__(self) -> None:
        size = len(self.modules)
        if size == 0:
            raise ValueError("matrix must not be empty")
        for row in self.modules:
            if len(row) != size:
                raise ValueError("matrix must be square")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[bool]], version: int) -> "QrMatrix":
        return cls(tuple(tuple(bool(value) for value in row) for row in rows), version)

    @property
    def size(self) -> int:
        return len(self.modules)

    def is_dark(self, x: int, y: int) -> bool:
        return self.modules[y][x]

    def dark_modules(self) -> Iterator[Coordinate]:
        """Yield ``(x, y)`` for every dark module in row-major order."""
        for y, row in enumerate(self.modules):
            for x, value in enumerate(row):
                if value:
                    yield x, y

    def dark_count(self) -> int:
        return sum(1 for _ in self.dark_modules())
