"""Small helpers shared across the package."""

from __future__ import annotations


class SeqGenerator:
    """Hands out consecutive sequence numbers that wrap around at a fixed width."""

    def __init__(self, value: int = 0, bits: int = 32) -> None:
        if bits <= 0:
            raise ValueError("bits must be positive")
        self._mask = (1 << bits) - 1
        self._value = value & self._mask

    def get(self) -> int:
        """Return the current value and advance, wrapping past the maximum."""
        value = self._value
        self._value = (value + 1) & self._mask
        return value

    def __repr__(self) -> str:
        return f"SeqGenerator(value={self._value}, bits={self._mask.bit_length()})"