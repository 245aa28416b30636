"""
ilock.apps.access_pass: a self-minting access pass paid for in ILOCK.

The application is deployed at its own address with a known code hash, the
token owner opens a port for that hash, and the application connects a socket
to it. `self_mint` then charges the minter through the socket and records the
new pass.

The next-id counter and the cap check are settled *before* the socket call,
so a callee that re-enters `self_mint` observes the reserved id and cannot
mint past the cap. If the socket call fails, the whole mint is rolled back.
"""

from __future__ import annotations

import hashlib
from typing import List, Tuple

from ilock.contract import ILockToken
from ilock.core.errors import CallerNotOwner, CapReached, PriceTooLow, TokenNotFound, ZeroAddress
from ilock.core.logging import call_scope, get_logger
from ilock.math import require_u128
from ilock.runtime.env import Address, Env, is_zero
from ilock.state.journal import Journal, JournaledMap
from ilock.token.sockets import Socket

log = get_logger(__name__)

ACCESS_PASS_CODE_HASH = hashlib.sha3_256(b"ilock.apps.access_pass.v1").digest()


class AccessPass:
    JOURNALED = ("next_id", "owners", "collections", "price")

    def __init__(
        self,
        env: Env,
        token: ILockToken,
        *,
        address: Address,
        cap: int,
        price: int,
        port: int = 0,
    ) -> None:
        self.env = env
        self.token = token
        self.address = address
        self.owner = env.caller()
        self.cap = cap
        self.price = price
        self.port = port
        self.next_id = 0
        self.owners: JournaledMap[int, Address] = JournaledMap()
        self.collections: JournaledMap[Address, Tuple[int, ...]] = JournaledMap()
        self.journal = Journal([self])
        env.code.register(address, ACCESS_PASS_CODE_HASH)

    def _require_owner(self, caller: Address) -> None:
        if caller != self.owner:
            raise CallerNotOwner(caller=caller)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def create_socket(self) -> Socket:
        self._require_owner(self.env.caller())
        with self.env.calling(self.address):
            return self.token.create_socket(self.owner, self.port)

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def self_mint(self, price: int) -> int:
        """Mint a pass to the caller, paying `price` ILOCK to the port owner."""
        minter = self.env.caller()
        with call_scope(function="self_mint", caller=minter):
            with self.token.journal.atomic(), self.journal.atomic():
                require_u128(price)
                if price < self.price:
                    raise PriceTooLow(offered=price, price=self.price)
                token_id = self._reserve_id()

                with self.env.calling(self.address):
                    self.token.call_socket(minter, price, token_id.to_bytes(16, "big"))

                self._record(minter, token_id)
        log.info("pass minted", extra={"to": minter, "token_id": token_id, "price": price})
        return token_id

    def mint(self, to: Address) -> int:
        """Owner-only free mint."""
        caller = self.env.caller()
        self._require_owner(caller)
        if is_zero(to):
            raise ZeroAddress(role="recipient")
        with self.journal.atomic():
            token_id = self._reserve_id()
            self._record(to, token_id)
        return token_id

    def set_price(self, price: int) -> None:
        self._require_owner(self.env.caller())
        require_u128(price)
        self.price = price

    def _reserve_id(self) -> int:
        token_id = self.next_id + 1
        if token_id > self.cap:
            raise CapReached(cap=self.cap)
        self.next_id = token_id
        return token_id

    def _record(self, to: Address, token_id: int) -> None:
        self.owners[token_id] = to
        self.collections[to] = self.collections.get(to, ()) + (token_id,)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def owner_of(self, token_id: int) -> Address:
        owner = self.owners.get(token_id)
        if owner is None:
            raise TokenNotFound(token_id=token_id)
        return owner

    def tokens_of(self, addr: Address) -> List[int]:
        return list(self.collections.get(addr, ()))

    def total_minted(self) -> int:
        return self.next_id


__all__ = ["ACCESS_PASS_CODE_HASH", "AccessPass"]
