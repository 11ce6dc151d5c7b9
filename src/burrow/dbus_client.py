"""D-Bus transport for connecting to the burrow backend service."""

from __future__ import annotations

import asyncio
import logging
import threading

from dbus_next.aio import MessageBus
from dbus_next.errors import AuthError, InvalidAddressError
from dbus_next import BusType, Message, MessageType

from burrow.core.bridge import BridgeError, TransportError, check_call
from burrow.core.filesystem import FileSystemError
from burrow.dbus_service import BUS_NAME, INTERFACE, NOT_ALLOWED_ERROR, OBJECT_PATH, READ_FAILED_ERROR

log = logging.getLogger(__name__)


class DBusTransport:
    """Synchronous transport over the D-Bus service.

    Owns a private event loop; calls from several threads are serialized.
    """

    def __init__(self, bus_type: BusType = BusType.SESSION) -> None:
        self._bus_type = bus_type
        self._bus: MessageBus | None = None
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()

    def call(self, operation: str, *args: str) -> str:
        op = check_call(operation, args)
        with self._lock:
            return self._loop.run_until_complete(self._call(op.member, list(args)))

    def close(self) -> None:
        """Disconnect from the bus and release the event loop."""
        with self._lock:
            if self._bus is not None:
                self._bus.disconnect()
                self._bus = None
            self._loop.close()

    async def _connect(self) -> MessageBus:
        if self._bus is None:
            try:
                self._bus = await MessageBus(bus_type=self._bus_type).connect()
            except (OSError, AuthError, InvalidAddressError) as e:
                raise TransportError(f"Cannot connect to D-Bus: {e}") from e
            log.debug("Connected to D-Bus (%s)", self._bus_type)
        return self._bus

    async def _call(self, member: str, args: list[str]) -> str:
        bus = await self._connect()
        reply = await bus.call(
            Message(
                destination=BUS_NAME,
                path=OBJECT_PATH,
                interface=INTERFACE,
                member=member,
                signature="s" * len(args),
                body=args,
            )
        )
        if reply.message_type == MessageType.ERROR:
            text = reply.body[0] if reply.body else reply.error_name
            if reply.error_name == READ_FAILED_ERROR:
                raise FileSystemError(text)
            if reply.error_name == NOT_ALLOWED_ERROR:
                raise BridgeError(text)
            raise TransportError(f"{reply.error_name}: {text}")
        return reply.body[0]
