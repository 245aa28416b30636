"""
ilock.runtime.env: host collaborators consumed by the engine.

The engine never reads wall time or identity on its own. The hosting
environment supplies:

  - a **Clock** with `current_period()` (month counter) and `current_time()`
    (milliseconds), both monotonic;
  - a **CallContext** answering `caller()` for the call in progress;
  - a **CodeRegistry** mapping deployed application addresses to code hashes
    (used to match applications against ports).

`Env` bundles these with the event sink so components receive one handle.

Example
-------
    env = Env(clock=ManualClock())
    with env.calling(alice):
        token.transfer(bob, 10)
    env.clock.advance_period()
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from ilock.core.errors import ConstructionError
from ilock.runtime.events import EventSink

Address = bytes

ZERO_ADDRESS: Address = b"\x00" * 32
DEFAULT_PERIOD_MS = 2_592_000_000  # 30 days


def is_zero(addr: Address) -> bool:
    return addr == ZERO_ADDRESS


# =============================================================================
# Clocks
# =============================================================================


class Clock(Protocol):
    genesis_ms: int
    period_ms: int

    def current_period(self) -> int: ...

    def current_time(self) -> int: ...


class ManualClock:
    """
    Deterministic clock for tests and simulations. Time only moves forward.

    Periods are derived from time (`(time_ms - genesis_ms) // period_ms`) so
    advancing a period also moves time, keeping both counters consistent. The
    clock starts at genesis unless `start_ms` says otherwise.
    """

    def __init__(
        self,
        *,
        start_ms: Optional[int] = None,
        period_ms: int = DEFAULT_PERIOD_MS,
        genesis_ms: int = 0,
    ) -> None:
        if period_ms <= 0:
            raise ConstructionError("period must be positive", period_ms=period_ms)
        self._now = genesis_ms if start_ms is None else start_ms
        self.genesis_ms = genesis_ms
        self.period_ms = period_ms

    def current_time(self) -> int:
        return self._now

    def current_period(self) -> int:
        return max(0, self._now - self.genesis_ms) // self.period_ms

    def advance(self, ms: int) -> int:
        if ms < 0:
            raise ValueError("clock cannot move backwards")
        self._now += ms
        return self._now

    def advance_period(self, n: int = 1) -> int:
        """Jump to the start of the period `n` periods ahead; returns the new period."""
        if n < 0:
            raise ValueError("clock cannot move backwards")
        target = self.genesis_ms + (self.current_period() + n) * self.period_ms
        self._now = max(self._now, target)
        return self.current_period()

    def set_time(self, ms: int) -> None:
        if ms < self._now:
            raise ValueError("clock cannot move backwards")
        self._now = ms


class TimestampClock:
    """
    Clock over a millisecond time source, counting periods since genesis.
    Before genesis the period is 0.
    """

    def __init__(
        self,
        *,
        genesis_ms: int,
        period_ms: int = DEFAULT_PERIOD_MS,
        source: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
    ) -> None:
        if period_ms <= 0:
            raise ConstructionError("period must be positive", period_ms=period_ms)
        self.genesis_ms = genesis_ms
        self.period_ms = period_ms
        self._source = source
        self._last = 0

    def current_time(self) -> int:
        # Clamp to the last observed value so a stepped-back host clock stays monotonic.
        self._last = max(self._last, self._source())
        return self._last

    def current_period(self) -> int:
        return max(0, self.current_time() - self.genesis_ms) // self.period_ms


def ms_until_next_period(clock: Clock) -> int:
    """Milliseconds left until the next period boundary."""
    elapsed = max(0, clock.current_time() - clock.genesis_ms)
    return clock.period_ms - (elapsed % clock.period_ms)


# =============================================================================
# Caller context & code registry
# =============================================================================


class CallContext:
    """Stack of callers; the top is the caller of the operation in progress."""

    def __init__(self, default: Optional[Address] = None) -> None:
        self._stack: List[Address] = [default] if default is not None else []

    def caller(self) -> Address:
        if not self._stack:
            raise RuntimeError("no caller in context")
        return self._stack[-1]

    @contextmanager
    def calling(self, addr: Address) -> Iterator[Address]:
        self._stack.append(addr)
        try:
            yield addr
        finally:
            self._stack.pop()


@dataclass
class CodeRegistry:
    """Address -> code hash of deployed application contracts."""

    hashes: Dict[Address, bytes] = field(default_factory=dict)

    def register(self, addr: Address, code_hash: bytes) -> None:
        self.hashes[addr] = bytes(code_hash)

    def code_hash(self, addr: Address) -> Optional[bytes]:
        return self.hashes.get(addr)


# =============================================================================
# Bundle
# =============================================================================


@dataclass
class Env:
    clock: Clock = field(default_factory=ManualClock)
    context: CallContext = field(default_factory=CallContext)
    sink: EventSink = field(default_factory=EventSink)
    code: CodeRegistry = field(default_factory=CodeRegistry)

    def caller(self) -> Address:
        return self.context.caller()

    def calling(self, addr: Address):
        return self.context.calling(addr)


__all__ = [
    "Address",
    "ZERO_ADDRESS",
    "DEFAULT_PERIOD_MS",
    "is_zero",
    "Clock",
    "ManualClock",
    "TimestampClock",
    "ms_until_next_period",
    "CallContext",
    "CodeRegistry",
    "Env",
]
