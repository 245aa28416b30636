"""
ilock.runtime.events: event records and the buffered notification sink.

Components describe what happened by emitting small frozen records
(`Transfer`, `Approval`, `Reward`, ...). The sink buffers them for the
duration of one public call and only publishes them when the call commits,
so a failed call never leaves a notification behind.

Typical use (the contract facade does this for every public call):

    sink = EventSink()
    sink.begin()
    sink.emit(Transfer(src, dst, 10))
    sink.commit()          # or sink.rollback() on failure
    sink.events            # -> [Transfer(...)]
    sink.digest()          # stable sha3 over the committed stream
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, fields
from typing import Callable, List, Optional, Tuple, Type, TypeVar

Address = bytes

# --------------------------------------------------------------------------------------
# Event records
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    NAME = b"ilock.Event"

    def encode(self) -> bytes:
        """Deterministic byte encoding: NAME || field values, length-prefixed."""
        buf = bytearray(self.NAME)
        for f in fields(self):
            v = getattr(self, f.name)
            if isinstance(v, (bytes, bytearray)):
                raw = bytes(v)
            elif isinstance(v, int):
                raw = v.to_bytes(32, "big", signed=False)
            else:
                raw = str(v).encode("utf-8")
            buf += len(raw).to_bytes(4, "big") + raw
        return bytes(buf)


@dataclass(frozen=True)
class Transfer(Event):
    NAME = b"ilock.token.Transfer"
    src: Address
    dst: Address
    amount: int


@dataclass(frozen=True)
class Approval(Event):
    NAME = b"ilock.token.Approval"
    owner: Address
    spender: Address
    amount: int


@dataclass(frozen=True)
class Reward(Event):
    NAME = b"ilock.token.Reward"
    to: Address
    amount: int


@dataclass(frozen=True)
class OwnershipTransferred(Event):
    NAME = b"ilock.owner.Transferred"
    previous: Address
    new: Address


@dataclass(frozen=True)
class PauseChanged(Event):
    NAME = b"ilock.pause.Changed"
    paused: bool
    by: Address


@dataclass(frozen=True)
class MultisigOrdered(Event):
    NAME = b"ilock.multisig.Ordered"
    orderer: Address
    function: str
    time: int


@dataclass(frozen=True)
class MultisigSigned(Event):
    NAME = b"ilock.multisig.Signed"
    signer: Address
    function: str
    count: int


@dataclass(frozen=True)
class SignatoryChanged(Event):
    NAME = b"ilock.multisig.SignatoryChanged"
    signatory: Address
    added: bool


@dataclass(frozen=True)
class CodeUpdated(Event):
    NAME = b"ilock.contract.CodeUpdated"
    code_hash: bytes


E = TypeVar("E", bound=Event)

# --------------------------------------------------------------------------------------
# Sink
# --------------------------------------------------------------------------------------


class EventSink:
    """
    Buffered, fire-and-forget sink. Emitters never read anything back.

    `begin()` opens a call frame; frames nest so an inner call that fails can be
    discarded while the outer one continues. `commit()` folds the innermost
    frame into its parent (or into the published stream at depth zero).
    """

    __slots__ = ["_events", "_frames", "_listeners"]

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._frames: List[List[Event]] = []
        self._listeners: List[Callable[[Event], None]] = []

    # ------------------------ frames ------------------------

    def begin(self) -> None:
        self._frames.append([])

    def commit(self) -> None:
        frame = self._frames.pop()
        if self._frames:
            self._frames[-1].extend(frame)
            return
        self._events.extend(frame)
        for ev in frame:
            for fn in self._listeners:
                fn(ev)

    def rollback(self) -> None:
        self._frames.pop()

    @property
    def depth(self) -> int:
        return len(self._frames)

    # ------------------------ mutation ------------------------

    def emit(self, event: Event) -> None:
        if self._frames:
            self._frames[-1].append(event)
        else:
            self._events.append(event)
            for fn in self._listeners:
                fn(event)

    def subscribe(self, fn: Callable[[Event], None]) -> None:
        """Register a callback invoked for every published event."""
        self._listeners.append(fn)

    # ------------------------ queries ------------------------

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def of_type(self, kind: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, kind)]

    def last(self, kind: Optional[Type[E]] = None) -> Optional[Event]:
        for e in reversed(self._events):
            if kind is None or isinstance(e, kind):
                return e
        return None

    def digest(self) -> bytes:
        """sha3_256 chained over the published events' encodings."""
        h = hashlib.sha3_256(b"ILOCK-EVENTS\0")
        for e in self._events:
            h.update(hashlib.sha3_256(e.encode()).digest())
        return h.digest()

    def clear(self) -> None:
        self._events.clear()


__all__ = [
    "Event",
    "Transfer",
    "Approval",
    "Reward",
    "OwnershipTransferred",
    "PauseChanged",
    "MultisigOrdered",
    "MultisigSigned",
    "SignatoryChanged",
    "CodeUpdated",
    "EventSink",
]
