"""
Progress reporting for long-running batches (downloads, extraction, copies).

Engine code only talks to the :class:`Progress` protocol; the CLI plugs in
:class:`TqdmProgress`, tests and library callers get :class:`NullProgress`.
"""

from __future__ import annotations

from typing import Optional, Protocol

from tqdm import tqdm


class Progress(Protocol):
    def begin(self, label: str, total: int) -> None: ...

    def advance(self, current: int) -> None: ...

    def end(self) -> None: ...


class NullProgress:
    def begin(self, label: str, total: int) -> None:
        pass

    def advance(self, current: int) -> None:
        pass

    def end(self) -> None:
        pass


class TqdmProgress:
    """One tqdm bar per ``begin`` / ``end`` pair; ``advance`` takes an absolute position."""

    def __init__(self, unit: str = "file"):
        self._unit = unit
        self._bar: Optional[tqdm] = None

    def begin(self, label: str, total: int) -> None:
        self.end()
        self._bar = tqdm(total=total, desc=label, unit=self._unit)

    def advance(self, current: int) -> None:
        if self._bar is None:
            return
        self._bar.update(current - self._bar.n)

    def end(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
