"""
ilock.governance.multisig
=========================

Quorum gate for the privileged functions of the token.

One global transaction slot is shared by all signatories:

    Idle/Stale -> Ordered(function, orderer, t0) -> Signing -> Ready -> Consumed

- ``order(function)`` claims the slot. Ordering counts as the orderer's own
  first signature. The slot cannot be claimed while the current transaction
  is live, and the orderer of a transaction that went stale may not be the
  one to re-order (a single signatory cannot keep the slot jammed).
- ``sign(function)`` adds a signature for the *same* function.
- ``check_multisig(function, expected)`` is what every privileged operation
  runs first; the operation consumes the transaction when it succeeds.

Times are milliseconds from the host clock. A transaction is stale once
``now - t0 >= timelimit``.

Standing invariant: ``len(signatories) >= threshold + 1`` and
``threshold >= THRESHOLD_MIN``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Final, Iterable, List, Optional, Tuple, Union

from ilock.core.errors import (
    AlreadySignatory,
    AlreadySigned,
    CallerNotSignatory,
    CannotReorder,
    ConstructionError,
    InvalidFunction,
    NoSignatory,
    NotEnoughSignatures,
    TooFewSignatories,
    TransactionAlreadyOrdered,
    TransactionStale,
    UnderThresholdMin,
    UnderTimeLimit,
    WrongFunction,
    ZeroAddress,
)
from ilock.core.logging import get_logger
from ilock.runtime.env import Address, Clock, is_zero
from ilock.runtime.events import EventSink, MultisigOrdered, MultisigSigned, SignatoryChanged

log = get_logger(__name__)

THRESHOLD_MIN: Final[int] = 2
TIME_LIMIT_MIN: Final[int] = 600_000  # ten minutes


class Function(IntEnum):
    TRANSFER_OWNERSHIP = 0
    UNPAUSE = 1
    ADD_SIGNATORY = 2
    REMOVE_SIGNATORY = 3
    CHANGE_TIMELIMIT = 4
    CHANGE_THRESHOLD = 5
    UPDATE_CONTRACT = 6


FunctionRef = Union[Function, str]


def parse_function(value: FunctionRef) -> Function:
    if isinstance(value, Function):
        return value
    if isinstance(value, str):
        try:
            return Function[value.strip().upper()]
        except KeyError:
            pass
    raise InvalidFunction(function=str(value))


class TxState(str, Enum):
    IDLE = "idle"
    SIGNING = "signing"
    READY = "ready"
    STALE = "stale"
    CONSUMED = "consumed"


@dataclass(frozen=True)
class Signature:
    signer: Address
    time: int


@dataclass(frozen=True)
class MultisigTx:
    orderer: Optional[Address] = None
    signatures: Tuple[Signature, ...] = ()
    function: Optional[Function] = None
    time: int = 0
    ready: bool = False
    consumed: bool = False

    @property
    def idle(self) -> bool:
        return self.function is None

    def elapsed(self, now: int) -> int:
        return now - self.time

    def is_live(self, now: int, timelimit: int) -> bool:
        return not self.idle and not self.consumed and self.elapsed(now) < timelimit

    def is_stale(self, now: int, timelimit: int) -> bool:
        return not self.idle and not self.consumed and self.elapsed(now) >= timelimit

    def signed_by(self, addr: Address) -> bool:
        return any(s.signer == addr for s in self.signatures)


class MultisigCoordinator:
    JOURNALED = ("signatories", "threshold", "timelimit", "tx")

    def __init__(
        self,
        signatories: Iterable[Address],
        *,
        clock: Clock,
        sink: EventSink,
        threshold: int = THRESHOLD_MIN,
        timelimit: int = TIME_LIMIT_MIN,
    ) -> None:
        sigs = list(signatories)
        if any(is_zero(s) for s in sigs):
            raise ConstructionError("signatory cannot be the zero address")
        if len(set(sigs)) != len(sigs):
            raise ConstructionError("duplicate signatories")
        if threshold < THRESHOLD_MIN:
            raise ConstructionError("threshold below minimum", threshold=threshold)
        if len(sigs) < threshold + 1:
            raise ConstructionError("too few signatories for threshold", count=len(sigs), threshold=threshold)
        if timelimit < TIME_LIMIT_MIN:
            raise ConstructionError("time limit below minimum", timelimit=timelimit)

        self.clock = clock
        self.sink = sink
        self.signatories: Tuple[Address, ...] = tuple(sigs)
        self.threshold = threshold
        self.timelimit = timelimit
        self.tx = MultisigTx()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_signatory(self, addr: Address) -> bool:
        return addr in self.signatories

    def require_signatory(self, caller: Address) -> None:
        if caller not in self.signatories:
            raise CallerNotSignatory(caller=caller)

    def state(self) -> TxState:
        now = self.clock.current_time()
        if self.tx.idle:
            return TxState.IDLE
        if self.tx.consumed:
            return TxState.CONSUMED
        if self.tx.is_stale(now, self.timelimit):
            return TxState.STALE
        if len(self.tx.signatures) >= self.threshold:
            return TxState.READY
        return TxState.SIGNING

    # ------------------------------------------------------------------
    # Ordering & signing
    # ------------------------------------------------------------------

    def order(self, caller: Address, function: FunctionRef) -> MultisigTx:
        self.require_signatory(caller)
        now = self.clock.current_time()
        if self.tx.is_live(now, self.timelimit):
            raise TransactionAlreadyOrdered(function=self.tx.function, orderer=self.tx.orderer)
        if self.tx.is_stale(now, self.timelimit) and self.tx.orderer == caller:
            raise CannotReorder(orderer=caller)
        f = parse_function(function)

        self.tx = MultisigTx(
            orderer=caller,
            signatures=(Signature(caller, now),),
            function=f,
            time=now,
            ready=self.threshold <= 1,
        )
        self.sink.emit(MultisigOrdered(caller, f.name, now))
        log.info("multisig ordered", extra={"function": f, "orderer": caller})
        return self.tx

    def sign(self, caller: Address, function: FunctionRef) -> MultisigTx:
        self.require_signatory(caller)
        f = parse_function(function)
        if self.tx.function is not f:
            raise WrongFunction(expected=self.tx.function, got=f)
        now = self.clock.current_time()
        if not self.tx.is_live(now, self.timelimit):
            raise TransactionStale(function=f)
        if self.tx.signed_by(caller):
            raise AlreadySigned(signer=caller)

        signatures = self.tx.signatures + (Signature(caller, now),)
        self.tx = replace(self.tx, signatures=signatures, ready=len(signatures) >= self.threshold)
        self.sink.emit(MultisigSigned(caller, f.name, len(signatures)))
        log.info("multisig signed", extra={"function": f, "signer": caller, "count": len(signatures)})
        return self.tx

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def check_multisig(self, caller: Address, function: FunctionRef, expected: Function) -> None:
        """Raise unless `caller` may run `expected` under the in-flight transaction."""
        self.require_signatory(caller)
        if len(self.tx.signatures) < self.threshold:
            raise NotEnoughSignatures(count=len(self.tx.signatures), threshold=self.threshold)
        if not self.tx.is_live(self.clock.current_time(), self.timelimit):
            raise TransactionStale(function=self.tx.function)
        f = parse_function(function)
        if f is not self.tx.function or f is not expected:
            raise WrongFunction(expected=expected, ordered=self.tx.function, got=f)

    def consume(self) -> None:
        self.tx = replace(self.tx, consumed=True, ready=False)
        log.info("multisig consumed", extra={"function": self.tx.function})

    # ------------------------------------------------------------------
    # Self-governance
    # ------------------------------------------------------------------

    def add_signatory(self, caller: Address, signatory: Address, function: FunctionRef) -> None:
        self.check_multisig(caller, function, Function.ADD_SIGNATORY)
        if is_zero(signatory):
            raise ZeroAddress(role="signatory")
        if signatory in self.signatories:
            raise AlreadySignatory(signatory=signatory)
        self.signatories = self.signatories + (signatory,)
        self.consume()
        self.sink.emit(SignatoryChanged(signatory, True))

    def remove_signatory(self, caller: Address, signatory: Address, function: FunctionRef) -> None:
        self.check_multisig(caller, function, Function.REMOVE_SIGNATORY)
        if is_zero(signatory):
            raise ZeroAddress(role="signatory")
        if signatory not in self.signatories:
            raise NoSignatory(signatory=signatory)
        if len(self.signatories) - 1 < self.threshold + 1:
            raise TooFewSignatories(count=len(self.signatories), threshold=self.threshold)
        self.signatories = tuple(s for s in self.signatories if s != signatory)
        self.consume()
        self.sink.emit(SignatoryChanged(signatory, False))

    def change_threshold(self, caller: Address, threshold: int, function: FunctionRef) -> None:
        self.check_multisig(caller, function, Function.CHANGE_THRESHOLD)
        if threshold < THRESHOLD_MIN:
            raise UnderThresholdMin(threshold=threshold, minimum=THRESHOLD_MIN)
        if len(self.signatories) < threshold + 1:
            raise TooFewSignatories(count=len(self.signatories), threshold=threshold)
        self.threshold = threshold
        self.consume()
        log.info("threshold changed", extra={"threshold": threshold})

    def change_timelimit(self, caller: Address, timelimit: int, function: FunctionRef) -> None:
        self.check_multisig(caller, function, Function.CHANGE_TIMELIMIT)
        if timelimit < TIME_LIMIT_MIN:
            raise UnderTimeLimit(timelimit=timelimit, minimum=TIME_LIMIT_MIN)
        self.timelimit = timelimit
        self.consume()
        log.info("time limit changed", extra={"timelimit": timelimit})

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def list_signatories(self, caller: Address) -> List[Address]:
        self.require_signatory(caller)
        return list(self.signatories)

    def check_signatures(self, caller: Address) -> Tuple[Signature, ...]:
        self.require_signatory(caller)
        if self.tx.idle:
            return ()
        if not self.tx.is_live(self.clock.current_time(), self.timelimit):
            raise TransactionStale(function=self.tx.function)
        return self.tx.signatures

    def signatory_count(self) -> int:
        return len(self.signatories)

    def signature_count(self) -> int:
        return len(self.tx.signatures)


__all__ = [
    "THRESHOLD_MIN",
    "TIME_LIMIT_MIN",
    "Function",
    "FunctionRef",
    "parse_function",
    "TxState",
    "Signature",
    "MultisigTx",
    "MultisigCoordinator",
]
