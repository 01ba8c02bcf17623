"""Structural contracts shared by the codecs."""

from __future__ import annotations

from typing import Protocol, TypeVar

T = TypeVar("T")


class Encoder(Protocol[T]):
    """Reversible conversion between ``T`` and ``str``.

    ``retains_sort_order`` reports whether comparing encoded strings gives the
    same order as comparing the original values.
    """

    @property
    def retains_sort_order(self) -> bool: ...

    def encode(self, value: T) -> str: ...

    def decode(self, value: str) -> T: ...


class PaddingEncoder(Encoder[T], Protocol[T]):
    """Encoder that can left-pad its output with its own zero symbol."""

    def pad(self, encoded: str, width: int) -> str: ...
