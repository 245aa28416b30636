"""
ilock.token.sockets: ports and sockets: the cross-contract capability.

A *port* is an owner-registered slot describing which application code may
connect (by code hash), who receives the funds moved through it, and an
optional lifetime cap on the amount moved. A deployed application whose code
hash matches a port opens a *socket*, binding its own address to an operator
and the port number. Afterwards that application (and only it) may call
`call_socket` to move ILOCK from an address to the port owner.

Funds move through the ordinary ledger transfer path, so a port owned by the
treasury retires the tokens into the REWARDS pool.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ilock.core.errors import (
    CallerNotOperator,
    InvalidCodeHash,
    PortCapSurpassed,
    PortLocked,
    PortNotFound,
    SocketMismatch,
    ZeroAddress,
)
from ilock.core.logging import get_logger
from ilock.governance.gates import Ownable
from ilock.math import require_u128, u128_add
from ilock.runtime.env import Address, CodeRegistry, is_zero
from ilock.state.journal import JournaledMap
from ilock.token.ledger import Ledger

log = get_logger(__name__)


@dataclass(frozen=True)
class Port:
    application: bytes
    cap: int
    locked: bool
    owner: Address
    paid: int = 0


@dataclass(frozen=True)
class Socket:
    operator: Address
    port: int


class SocketRegistry:
    JOURNALED = ("ports", "sockets")

    def __init__(self, ledger: Ledger, ownable: Ownable, code: CodeRegistry) -> None:
        self.ledger = ledger
        self.ownable = ownable
        self.code = code
        self.ports: JournaledMap[int, Port] = JournaledMap()
        self.sockets: JournaledMap[Address, Socket] = JournaledMap()

    def create_port(
        self,
        caller: Address,
        code_hash: bytes,
        cap: int,
        locked: bool,
        number: int,
        owner: Address,
    ) -> Port:
        self.ownable.require_owner(caller)
        if is_zero(owner):
            raise ZeroAddress(role="port owner")
        if len(code_hash) != 32:
            raise InvalidCodeHash(length=len(code_hash))
        require_u128(cap)
        existing = self.ports.get(number)
        if existing is not None and existing.locked:
            raise PortLocked(port=number)
        port = Port(application=bytes(code_hash), cap=cap, locked=bool(locked), owner=owner)
        self.ports[number] = port
        log.info("port created", extra={"port": number, "owner": owner, "cap": cap})
        return port

    def port(self, number: int) -> Port:
        port = self.ports.get(number)
        if port is None:
            raise PortNotFound(port=number)
        return port

    def socket(self, application: Address) -> Socket:
        socket = self.sockets.get(application)
        if socket is None:
            raise CallerNotOperator(application=application)
        return socket

    def create_socket(self, caller: Address, operator: Address, number: int) -> Socket:
        """`caller` is the application contract opening the socket."""
        port = self.port(number)
        if self.code.code_hash(caller) != port.application:
            raise SocketMismatch(application=caller, port=number)
        if is_zero(operator):
            raise ZeroAddress(role="operator")
        socket = Socket(operator=operator, port=number)
        self.sockets[caller] = socket
        log.info("socket created", extra={"application": caller, "operator": operator, "port": number})
        return socket

    def call_socket(self, caller: Address, address: Address, amount: int, data: bytes = b"") -> None:
        """Move `amount` from `address` to the owner of the caller's port."""
        socket = self.socket(caller)
        port = self.port(socket.port)
        require_u128(amount)
        paid = u128_add(port.paid, amount)
        if port.cap and paid > port.cap:
            raise PortCapSurpassed(port=socket.port, cap=port.cap, paid=port.paid, amount=amount)

        self.ledger.transfer(address, port.owner, amount)
        self.ports[socket.port] = replace(port, paid=paid)
        log.debug(
            "socket call",
            extra={"application": caller, "port": socket.port, "amount": amount, "data_len": len(data)},
        )


__all__ = ["Port", "Socket", "SocketRegistry"]
