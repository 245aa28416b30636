"""
ilock.core.errors
-----------------

Error taxonomy for the token engine.

Every public operation either completes or raises exactly one of the kinds
below; nothing is recovered internally. The root `IlockError` carries a
machine-stable `code`, a human `message` and JSON-safe `data`, so the same
object can be logged, rendered by the CLI, or bridged to an RPC layer.

Kinds are grouped into families (`LedgerError`, `VestingError`,
`MultisigError`, `SocketError`) so callers can catch by area:

    try:
        token.distribute_tokens(alice, Pool.TEAM)
    except VestingError as e:
        log.warning("payout refused", extra=e.to_dict())

This module uses only stdlib so it can be imported from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(str, Enum):
    # Arithmetic
    OVERFLOW = "MATH/OVERFLOW"
    UNDERFLOW = "MATH/UNDERFLOW"

    # Ledger
    ZERO_ADDRESS = "LEDGER/ZERO_ADDRESS"
    INSUFFICIENT_BALANCE = "LEDGER/INSUFFICIENT_BALANCE"
    INSUFFICIENT_ALLOWANCE = "LEDGER/INSUFFICIENT_ALLOWANCE"
    CALLER_NOT_OWNER = "LEDGER/CALLER_NOT_OWNER"
    CONTRACT_PAUSED = "LEDGER/CONTRACT_PAUSED"
    NEW_OWNER_HAS_BALANCE = "LEDGER/NEW_OWNER_HAS_BALANCE"

    # Pools / vesting / payouts
    INVALID_POOL = "VESTING/INVALID_POOL"
    STAKEHOLDER_NOT_FOUND = "VESTING/STAKEHOLDER_NOT_FOUND"
    STAKEHOLDER_ALREADY_REGISTERED = "VESTING/STAKEHOLDER_ALREADY_REGISTERED"
    STAKEHOLDER_SHARE_PAID = "VESTING/STAKEHOLDER_SHARE_PAID"
    CLIFF_NOT_PASSED = "VESTING/CLIFF_NOT_PASSED"
    PAYOUT_TOO_EARLY = "VESTING/PAYOUT_TOO_EARLY"
    PAYMENT_TOO_LARGE = "VESTING/PAYMENT_TOO_LARGE"

    # Multisig
    CALLER_NOT_SIGNATORY = "MULTISIG/CALLER_NOT_SIGNATORY"
    NOT_ENOUGH_SIGNATURES = "MULTISIG/NOT_ENOUGH_SIGNATURES"
    TRANSACTION_STALE = "MULTISIG/TRANSACTION_STALE"
    TRANSACTION_ALREADY_ORDERED = "MULTISIG/TRANSACTION_ALREADY_ORDERED"
    CANNOT_REORDER = "MULTISIG/CANNOT_REORDER"
    WRONG_FUNCTION = "MULTISIG/WRONG_FUNCTION"
    INVALID_FUNCTION = "MULTISIG/INVALID_FUNCTION"
    ALREADY_SIGNED = "MULTISIG/ALREADY_SIGNED"
    ALREADY_SIGNATORY = "MULTISIG/ALREADY_SIGNATORY"
    NO_SIGNATORY = "MULTISIG/NO_SIGNATORY"
    TOO_FEW_SIGNATORIES = "MULTISIG/TOO_FEW_SIGNATORIES"
    UNDER_THRESHOLD_MIN = "MULTISIG/UNDER_THRESHOLD_MIN"
    UNDER_TIME_LIMIT = "MULTISIG/UNDER_TIME_LIMIT"
    INVALID_CODE_HASH = "MULTISIG/INVALID_CODE_HASH"

    # Ports / sockets
    PORT_NOT_FOUND = "SOCKET/PORT_NOT_FOUND"
    PORT_LOCKED = "SOCKET/PORT_LOCKED"
    PORT_CAP_SURPASSED = "SOCKET/PORT_CAP_SURPASSED"
    SOCKET_MISMATCH = "SOCKET/SOCKET_MISMATCH"
    CALLER_NOT_OPERATOR = "SOCKET/CALLER_NOT_OPERATOR"

    # Applications
    CAP_REACHED = "APP/CAP_REACHED"
    PRICE_TOO_LOW = "APP/PRICE_TOO_LOW"
    TOKEN_NOT_FOUND = "APP/TOKEN_NOT_FOUND"

    # Startup
    CONSTRUCTION = "CORE/CONSTRUCTION"
    CONFIG = "CORE/CONFIG"


# ---------------------------------------------------------------------------
# Root error
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class IlockError(Exception):
    """
    Root error for the engine.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (addresses, amounts, periods). JSON-serializable.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def with_context(self, **ctx: Any) -> "IlockError":
        """Merge extra context into `data` and return self for chaining."""
        for k, v in ctx.items():
            self.data[k] = _coerce_json(v)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and bridges."""
        return {
            "code": self.code,
            "message": self.message,
            "data": _coerce_json(self.data),
        }

    def __str__(self) -> str:  # pragma: no cover - human formatting
        parts = [f"{self.code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class _Kind(IlockError):
    """Thin subclass base: each concrete kind only names its code and default text."""

    CODE: ClassVar[ErrorCode]
    MESSAGE: ClassVar[str] = ""

    def __init__(self, message: str = "", **data: Any) -> None:
        super().__init__(
            code=self.CODE.value,
            message=message or self.MESSAGE,
            data=_jsonmap(data),
        )


# Families


class ArithmeticFault(_Kind):
    pass


class LedgerError(_Kind):
    pass


class VestingError(_Kind):
    pass


class MultisigError(_Kind):
    pass


class SocketError(_Kind):
    pass


class ApplicationError(_Kind):
    pass


# ---------------------------------------------------------------------------
# Concrete kinds
# ---------------------------------------------------------------------------


class Overflow(ArithmeticFault):
    CODE = ErrorCode.OVERFLOW
    MESSAGE = "checked addition overflowed"


class Underflow(ArithmeticFault):
    CODE = ErrorCode.UNDERFLOW
    MESSAGE = "checked subtraction underflowed"


class ZeroAddress(LedgerError):
    CODE = ErrorCode.ZERO_ADDRESS
    MESSAGE = "the zero address is not a valid participant"


class InsufficientBalance(LedgerError):
    CODE = ErrorCode.INSUFFICIENT_BALANCE
    MESSAGE = "amount exceeds balance"


class InsufficientAllowance(LedgerError):
    CODE = ErrorCode.INSUFFICIENT_ALLOWANCE
    MESSAGE = "amount exceeds allowance"


class CallerNotOwner(LedgerError):
    CODE = ErrorCode.CALLER_NOT_OWNER
    MESSAGE = "caller is not the owner"


class ContractPaused(LedgerError):
    CODE = ErrorCode.CONTRACT_PAUSED
    MESSAGE = "contract is paused"


class NewOwnerHasBalance(LedgerError):
    CODE = ErrorCode.NEW_OWNER_HAS_BALANCE
    MESSAGE = "new owner must not hold a circulating balance"


class InvalidPool(VestingError):
    CODE = ErrorCode.INVALID_POOL
    MESSAGE = "unknown or ineligible pool"


class StakeholderNotFound(VestingError):
    CODE = ErrorCode.STAKEHOLDER_NOT_FOUND
    MESSAGE = "stakeholder not registered"


class StakeholderAlreadyRegistered(VestingError):
    CODE = ErrorCode.STAKEHOLDER_ALREADY_REGISTERED
    MESSAGE = "stakeholder already registered in this pool"


class StakeholderSharePaid(VestingError):
    CODE = ErrorCode.STAKEHOLDER_SHARE_PAID
    MESSAGE = "stakeholder share fully paid"


class CliffNotPassed(VestingError):
    CODE = ErrorCode.CLIFF_NOT_PASSED
    MESSAGE = "vesting cliff not passed"


class PayoutTooEarly(VestingError):
    CODE = ErrorCode.PAYOUT_TOO_EARLY
    MESSAGE = "payout already taken this period"


class PaymentTooLarge(VestingError):
    CODE = ErrorCode.PAYMENT_TOO_LARGE
    MESSAGE = "payment exceeds pool balance"


class CallerNotSignatory(MultisigError):
    CODE = ErrorCode.CALLER_NOT_SIGNATORY
    MESSAGE = "caller is not a signatory"


class NotEnoughSignatures(MultisigError):
    CODE = ErrorCode.NOT_ENOUGH_SIGNATURES
    MESSAGE = "not enough signatures"


class TransactionStale(MultisigError):
    CODE = ErrorCode.TRANSACTION_STALE
    MESSAGE = "multisig transaction is stale"


class TransactionAlreadyOrdered(MultisigError):
    CODE = ErrorCode.TRANSACTION_ALREADY_ORDERED
    MESSAGE = "a multisig transaction is already in flight"


class CannotReorder(MultisigError):
    CODE = ErrorCode.CANNOT_REORDER
    MESSAGE = "orderer of a stale transaction cannot order again"


class WrongFunction(MultisigError):
    CODE = ErrorCode.WRONG_FUNCTION
    MESSAGE = "function does not match the ordered transaction"


class InvalidFunction(MultisigError):
    CODE = ErrorCode.INVALID_FUNCTION
    MESSAGE = "unknown multisig function"


class AlreadySigned(MultisigError):
    CODE = ErrorCode.ALREADY_SIGNED
    MESSAGE = "signatory already signed"


class AlreadySignatory(MultisigError):
    CODE = ErrorCode.ALREADY_SIGNATORY
    MESSAGE = "address is already a signatory"


class NoSignatory(MultisigError):
    CODE = ErrorCode.NO_SIGNATORY
    MESSAGE = "address is not a signatory"


class TooFewSignatories(MultisigError):
    CODE = ErrorCode.TOO_FEW_SIGNATORIES
    MESSAGE = "signatory set must stay above threshold"


class UnderThresholdMin(MultisigError):
    CODE = ErrorCode.UNDER_THRESHOLD_MIN
    MESSAGE = "threshold below minimum"


class UnderTimeLimit(MultisigError):
    CODE = ErrorCode.UNDER_TIME_LIMIT
    MESSAGE = "time limit below minimum"


class InvalidCodeHash(MultisigError):
    CODE = ErrorCode.INVALID_CODE_HASH
    MESSAGE = "code hash must be 32 bytes"


class PortNotFound(SocketError):
    CODE = ErrorCode.PORT_NOT_FOUND
    MESSAGE = "port does not exist"


class PortLocked(SocketError):
    CODE = ErrorCode.PORT_LOCKED
    MESSAGE = "port is locked"


class PortCapSurpassed(SocketError):
    CODE = ErrorCode.PORT_CAP_SURPASSED
    MESSAGE = "port cap surpassed"


class SocketMismatch(SocketError):
    CODE = ErrorCode.SOCKET_MISMATCH
    MESSAGE = "application code hash does not match port"


class CallerNotOperator(SocketError):
    CODE = ErrorCode.CALLER_NOT_OPERATOR
    MESSAGE = "caller has no socket"


class CapReached(ApplicationError):
    CODE = ErrorCode.CAP_REACHED
    MESSAGE = "mint cap reached"


class PriceTooLow(ApplicationError):
    CODE = ErrorCode.PRICE_TOO_LOW
    MESSAGE = "offered price below mint price"


class TokenNotFound(ApplicationError):
    CODE = ErrorCode.TOKEN_NOT_FOUND
    MESSAGE = "token id does not exist"


class ConstructionError(_Kind):
    CODE = ErrorCode.CONSTRUCTION
    MESSAGE = "invalid construction parameters"


class ConfigError(_Kind):
    CODE = ErrorCode.CONFIG
    MESSAGE = "invalid configuration"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest.
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, Enum):
        return v.name
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, dict):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_coerce_json(x) for x in v]
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "ErrorCode",
    "IlockError",
    "ArithmeticFault",
    "LedgerError",
    "VestingError",
    "MultisigError",
    "SocketError",
    "ApplicationError",
    "Overflow",
    "Underflow",
    "ZeroAddress",
    "InsufficientBalance",
    "InsufficientAllowance",
    "CallerNotOwner",
    "ContractPaused",
    "NewOwnerHasBalance",
    "InvalidPool",
    "StakeholderNotFound",
    "StakeholderAlreadyRegistered",
    "StakeholderSharePaid",
    "CliffNotPassed",
    "PayoutTooEarly",
    "PaymentTooLarge",
    "CallerNotSignatory",
    "NotEnoughSignatures",
    "TransactionStale",
    "TransactionAlreadyOrdered",
    "CannotReorder",
    "WrongFunction",
    "InvalidFunction",
    "AlreadySigned",
    "AlreadySignatory",
    "NoSignatory",
    "TooFewSignatories",
    "UnderThresholdMin",
    "UnderTimeLimit",
    "InvalidCodeHash",
    "PortNotFound",
    "PortLocked",
    "PortCapSurpassed",
    "SocketMismatch",
    "CallerNotOperator",
    "CapReached",
    "PriceTooLow",
    "TokenNotFound",
    "ConstructionError",
    "ConfigError",
]
