"""
ilock.contract: the ILOCK token: one object wiring every component.

`ILockToken` is what a host talks to. Each public mutating method

  1. reads the caller from the environment exactly once,
  2. runs inside a journal checkpoint (all-or-nothing, events included),
  3. delegates to the component that owns the behaviour.

Components themselves take the caller explicitly, so they can be exercised
directly in tests without an environment.

    env = Env(clock=ManualClock())
    with env.calling(owner):
        token = ILockToken(env, signatories=(sig2, sig3))
        token.payout_tokens(alice, 100, "PARTNERS")
"""

from __future__ import annotations

import functools
from typing import Callable, List, Optional, Tuple, TypeVar

from ilock.core.config import EngineConfig
from ilock.core.errors import ConstructionError, IlockError, InvalidCodeHash, NewOwnerHasBalance, ZeroAddress
from ilock.core.logging import call_scope, get_logger
from ilock.governance.gates import Ownable, Pausable
from ilock.governance.multisig import (
    THRESHOLD_MIN,
    TIME_LIMIT_MIN,
    Function,
    FunctionRef,
    MultisigCoordinator,
    MultisigTx,
    Signature,
    TxState,
)
from ilock.runtime.env import Address, Env, is_zero, ms_until_next_period
from ilock.runtime.events import CodeUpdated, OwnershipTransferred, PauseChanged
from ilock.state.journal import Journal
from ilock.token.ledger import Ledger
from ilock.token.payouts import PayoutDispenser
from ilock.token.pools import DECIMALS, SUPPLY_CAP, PoolRef, PoolRegistry, PoolSpec, pool_spec
from ilock.token.rewards import RewardDistributor
from ilock.token.sockets import Port, Socket, SocketRegistry
from ilock.token.vesting import StakeholderRecord, VestingScheduler

log = get_logger(__name__)

T = TypeVar("T")


def external(fn: Callable[..., T]) -> Callable[..., T]:
    """Public state-changing entry point: caller read once, atomic, logged."""

    @functools.wraps(fn)
    def wrapper(self: "ILockToken", *args, **kwargs) -> T:
        caller = self.env.caller()
        with call_scope(function=fn.__name__, caller=caller):
            try:
                with self.journal.atomic():
                    return fn(self, caller, *args, **kwargs)
            except IlockError as e:
                log.debug("call rejected", extra={"code": e.code})
                raise

    return wrapper


class ILockToken:
    JOURNALED = ("code_hash_value",)

    def __init__(
        self,
        env: Env,
        *,
        signatories: Tuple[Address, Address],
        name: str = "Interlock Network",
        symbol: str = "ILOCK",
        threshold: int = THRESHOLD_MIN,
        timelimit: int = TIME_LIMIT_MIN,
    ) -> None:
        owner = env.caller()
        if is_zero(owner):
            raise ConstructionError("owner cannot be the zero address")
        extra = list(signatories)
        if len(extra) != 2:
            raise ConstructionError("exactly two additional signatories are required", count=len(extra))
        if owner in extra:
            raise ConstructionError("owner cannot be named as an additional signatory")
        if extra[0] == extra[1]:
            raise ConstructionError("additional signatories must be distinct")

        self.env = env
        self.name = name
        self.symbol = symbol
        self.code_hash_value: Optional[bytes] = None

        self.ownable = Ownable(owner)
        self.pausable = Pausable()
        self.pools = PoolRegistry()
        self.ledger = Ledger(self.ownable, self.pools, self.pausable, env.sink)
        self.vesting = VestingScheduler(self.ledger, self.ownable, env.clock)
        self.payouts = PayoutDispenser(self.ledger, self.ownable)
        self.rewards = RewardDistributor(self.ledger, self.ownable, env.sink)
        self.multisig = MultisigCoordinator(
            [owner, *extra], clock=env.clock, sink=env.sink, threshold=threshold, timelimit=timelimit
        )
        self.sockets = SocketRegistry(self.ledger, self.ownable, env.code)
        self.journal = Journal(
            [self.ownable, self.pausable, self.pools, self.ledger, self.vesting,
             self.rewards, self.multisig, self.sockets, self],
            sink=env.sink,
        )
        log.info("token deployed", extra={"owner": owner, "symbol": symbol})

    @classmethod
    def from_config(cls, env: Env, signatories: Tuple[Address, Address], cfg: EngineConfig) -> "ILockToken":
        return cls(
            env,
            signatories=signatories,
            name=cfg.token.name,
            symbol=cfg.token.symbol,
            threshold=cfg.multisig.threshold,
            timelimit=cfg.multisig.timelimit_ms,
        )

    # ==================================================================
    # Token metadata & ledger views
    # ==================================================================

    def token_name(self) -> str:
        return self.name

    def token_symbol(self) -> str:
        return self.symbol

    def token_decimals(self) -> int:
        return DECIMALS

    def cap(self) -> int:
        return SUPPLY_CAP

    def owner(self) -> Address:
        return self.ownable.owner

    def total_supply(self) -> int:
        return self.ledger.total_supply

    def balance_of(self, addr: Address) -> int:
        return self.ledger.balance_of(addr)

    def allowance(self, owner: Address, spender: Address) -> int:
        return self.ledger.allowance(owner, spender)

    # ==================================================================
    # Ledger mutations
    # ==================================================================

    @external
    def transfer(self, caller: Address, to: Address, amount: int, data: bytes = b"") -> None:
        self.ledger.transfer(caller, to, amount)

    @external
    def transfer_from(self, caller: Address, src: Address, to: Address, amount: int, data: bytes = b"") -> None:
        self.ledger.transfer_from(caller, src, to, amount)

    @external
    def approve(self, caller: Address, spender: Address, amount: int) -> None:
        self.ledger.approve(caller, spender, amount)

    @external
    def increase_allowance(self, caller: Address, spender: Address, added: int) -> int:
        return self.ledger.increase_allowance(caller, spender, added)

    @external
    def decrease_allowance(self, caller: Address, spender: Address, subtracted: int) -> int:
        return self.ledger.decrease_allowance(caller, spender, subtracted)

    # ==================================================================
    # Pools & vesting
    # ==================================================================

    def pool_balance(self, pool: PoolRef) -> int:
        return self.pools.pool_balance(pool)

    def pool_data(self, pool: PoolRef) -> Tuple[PoolSpec, int]:
        return pool_spec(pool), self.pools.pool_balance(pool)

    def months_passed(self) -> int:
        return self.vesting.months_passed()

    def remaining_time_until_next_payment(self) -> int:
        return ms_until_next_period(self.env.clock)

    @external
    def register_stakeholder(
        self, caller: Address, address: Address, share: int, pool: PoolRef, flag: int = 0
    ) -> StakeholderRecord:
        return self.vesting.register_stakeholder(caller, address, share, pool, flag)

    @external
    def distribute_tokens(self, caller: Address, address: Address, pool: PoolRef) -> int:
        return self.vesting.distribute_tokens(caller, address, pool)

    def get_stakes(self, address: Address) -> List[StakeholderRecord]:
        return self.vesting.get_stakes(address)

    def stakeholder_data(self, address: Address, pool: PoolRef) -> StakeholderRecord:
        return self.vesting.stakeholder_data(address, pool)

    # ==================================================================
    # Payouts & rewards
    # ==================================================================

    @external
    def payout_tokens(self, caller: Address, address: Address, amount: int, pool_name: PoolRef) -> None:
        self.payouts.payout_tokens(caller, address, amount, pool_name)

    @external
    def reward_interlocker(self, caller: Address, amount: int, address: Address) -> int:
        return self.rewards.reward_interlocker(caller, amount, address)

    def rewarded_total(self) -> int:
        return self.rewards.rewarded_total()

    def rewarded_interlocker_total(self, address: Address) -> int:
        return self.rewards.rewarded_interlocker_total(address)

    # ==================================================================
    # Multisig
    # ==================================================================

    @external
    def order_multisigtx(self, caller: Address, function: FunctionRef) -> MultisigTx:
        return self.multisig.order(caller, function)

    @external
    def sign_multisigtx(self, caller: Address, function: FunctionRef) -> MultisigTx:
        return self.multisig.sign(caller, function)

    def check_signatures(self) -> Tuple[Signature, ...]:
        return self.multisig.check_signatures(self.env.caller())

    def signatories(self) -> List[Address]:
        return self.multisig.list_signatories(self.env.caller())

    def signatory_count(self) -> int:
        return self.multisig.signatory_count()

    def signature_count(self) -> int:
        return self.multisig.signature_count()

    def threshold(self) -> int:
        return self.multisig.threshold

    def timelimit(self) -> int:
        return self.multisig.timelimit

    def multisig_state(self) -> TxState:
        return self.multisig.state()

    @external
    def add_signatory(self, caller: Address, signatory: Address, function: FunctionRef) -> None:
        self.multisig.add_signatory(caller, signatory, function)

    @external
    def remove_signatory(self, caller: Address, signatory: Address, function: FunctionRef) -> None:
        self.multisig.remove_signatory(caller, signatory, function)

    @external
    def change_threshold(self, caller: Address, threshold: int, function: FunctionRef) -> None:
        self.multisig.change_threshold(caller, threshold, function)

    @external
    def change_timelimit(self, caller: Address, timelimit: int, function: FunctionRef) -> None:
        self.multisig.change_timelimit(caller, timelimit, function)

    # ==================================================================
    # Privileged contract controls
    # ==================================================================

    def paused(self) -> bool:
        return self.pausable.paused

    @external
    def pause(self, caller: Address) -> None:
        """Any signatory may pause; un-pausing needs a quorum."""
        self.multisig.require_signatory(caller)
        if self.pausable.set_paused(True):
            self.env.sink.emit(PauseChanged(True, caller))
            log.info("paused")

    @external
    def unpause(self, caller: Address, function: FunctionRef) -> None:
        self.multisig.check_multisig(caller, function, Function.UNPAUSE)
        self.pausable.set_paused(False)
        self.multisig.consume()
        self.env.sink.emit(PauseChanged(False, caller))
        log.info("unpaused")

    @external
    def transfer_ownership(self, caller: Address, new_owner: Address, function: FunctionRef) -> None:
        """Hand the treasury role (and with it the reserve) to `new_owner`."""
        self.multisig.check_multisig(caller, function, Function.TRANSFER_OWNERSHIP)
        if is_zero(new_owner):
            raise ZeroAddress(role="new owner")
        if self.ledger.holds_circulating(new_owner):
            raise NewOwnerHasBalance(new_owner=new_owner, balance=self.ledger.balance_of(new_owner))
        previous = self.ownable.set_owner(new_owner)
        self.multisig.consume()
        self.env.sink.emit(OwnershipTransferred(previous, new_owner))
        log.info("ownership transferred", extra={"previous": previous, "new": new_owner})

    @external
    def update_contract(self, caller: Address, code_hash: bytes, function: FunctionRef) -> None:
        self.multisig.check_multisig(caller, function, Function.UPDATE_CONTRACT)
        if len(code_hash) != 32:
            raise InvalidCodeHash(length=len(code_hash))
        self.code_hash_value = bytes(code_hash)
        self.multisig.consume()
        self.env.sink.emit(CodeUpdated(self.code_hash_value))
        log.info("code updated", extra={"code_hash": self.code_hash_value})

    def code_hash(self) -> Optional[bytes]:
        return self.code_hash_value

    # ==================================================================
    # Ports & sockets
    # ==================================================================

    @external
    def create_port(
        self, caller: Address, code_hash: bytes, cap: int, locked: bool, number: int, owner: Address
    ) -> Port:
        return self.sockets.create_port(caller, code_hash, cap, locked, number, owner)

    @external
    def create_socket(self, caller: Address, operator: Address, port: int) -> Socket:
        return self.sockets.create_socket(caller, operator, port)

    @external
    def call_socket(self, caller: Address, address: Address, amount: int, data: bytes = b"") -> None:
        self.sockets.call_socket(caller, address, amount, data)

    def port(self, number: int) -> Port:
        return self.sockets.port(number)

    def socket(self, application: Address) -> Socket:
        return self.sockets.socket(application)


__all__ = ["ILockToken", "external"]
