"""View model that drives a credential flow between the user and the service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Any

from credentialsd.model import (
    BackgroundEvent,
    Completed,
    CredentialError,
    Device,
    ErrorKind,
    Failed,
    FlowController,
    HybridConnected,
    HybridConnecting,
    HybridNeedsQrCode,
    HybridQrStateChanged,
    HybridState,
    HybridStateKind,
    Operation,
    SelectingDevice,
    SetCredentials,
    SetDevices,
    SetTitle,
    Transport,
    UsbNeedsPin,
    UsbNeedsUserPresence,
    UsbNeedsUserVerification,
    UsbState,
    UsbStateChanged,
    UsbStateKind,
    ViewUpdate,
    WaitingForDevice,
)

_log = logging.getLogger(__name__)

_TITLES = {
    Operation.CREATE: "Create new credential",
    Operation.GET: "Use a credential",
}

_CREDENTIAL_SELECTION_FAILED = "Failed to select credential from device."
_HYBRID_FAILED = "Something went wrong. Try again later or use a different authenticator."

_FAILURE_MESSAGES = {
    ErrorKind.NO_CREDENTIALS: "No matching credentials found on this authenticator.",
    ErrorKind.PIN_ATTEMPTS_EXHAUSTED: (
        "No more PIN attempts allowed. Try removing your device and plugging it back in."
    ),
    ErrorKind.AUTHENTICATOR_ERROR: (
        "Something went wrong while retrieving a credential. "
        "Please try again later or use a different authenticator."
    ),
    ErrorKind.INTERNAL: (
        "Something went wrong while retrieving a credential. "
        "Please try again later or use a different authenticator."
    ),
    ErrorKind.CREDENTIAL_EXCLUDED: "This credential is already registered on this authenticator.",
}


class ViewEvent:
    """An action the user took in the view."""

    __slots__ = ()


@dataclass(frozen=True)
class Initiated(ViewEvent):
    pass


@dataclass(frozen=True)
class DeviceSelected(ViewEvent):
    device_id: str


@dataclass(frozen=True)
class CredentialSelected(ViewEvent):
    credential_id: str


@dataclass(frozen=True)
class UsbPinEntered(ViewEvent):
    pin: str


@dataclass(frozen=True)
class UserCancelled(ViewEvent):
    pass


def failure_message(error: CredentialError) -> str:
    """Return the message shown to the user for a failed USB flow."""
    return _FAILURE_MESSAGES[error.kind]


_END = object()


async def _pump(source: AsyncIterable[Any], sink: asyncio.Queue) -> None:
    try:
        async for item in source:
            sink.put_nowait(item)
    finally:
        sink.put_nowait(_END)


class ViewModel:
    """Reacts to user actions and service events, emitting view updates.

    ``events`` is an async iterable of ViewEvent; ``updates`` is a queue that
    receives ViewUpdate instructions.
    """

    def __init__(
        self,
        operation: Operation,
        flow_controller: FlowController,
        events: AsyncIterable[ViewEvent],
        updates: asyncio.Queue,
    ) -> None:
        self.operation = operation
        self.flow_controller = flow_controller
        self._events = events
        self._updates = updates
        self.title = ""
        self.devices: list[Device] = []
        self.selected_device: Device | None = None
        self.hybrid_qr_state = HybridState()
        self.hybrid_qr_code_data: bytes | None = None

    async def _send(self, update: ViewUpdate) -> None:
        await self._updates.put(update)

    async def _update_title(self) -> None:
        self.title = _TITLES[self.operation]
        await self._send(SetTitle(self.title))

    async def _update_devices(self) -> None:
        self.devices = list(await self.flow_controller.get_available_public_key_devices())
        await self._send(SetDevices(self.devices))

    async def select_device(self, device_id: str) -> None:
        """Start discovery on the device with the given id.

        Raises LookupError for an unknown id and RuntimeError when switching
        devices or choosing a transport that has no flow.
        """
        device = next((d for d in self.devices if d.id == device_id), None)
        if device is None:
            raise LookupError(f"unknown device: {device_id}")
        _log.debug("Device selected: %r", device)

        previous, self.selected_device = self.selected_device, device
        if previous is not None:
            if previous == device:
                return
            raise RuntimeError(
                f"cannot switch away from a {previous.transport.as_str()} device"
            )

        if device.transport is Transport.USB:
            await self.flow_controller.get_usb_credential()
        elif device.transport is Transport.HYBRID_QR:
            await self.flow_controller.get_hybrid_credential()
        else:
            raise RuntimeError(f"no credential flow for transport {device.transport.as_str()}")

        await self._send(WaitingForDevice(device))

    async def start_event_loop(self) -> None:
        """Process user and service events until the flow ends or is cancelled."""
        background = await self.flow_controller.initiate_event_stream()
        merged: asyncio.Queue = asyncio.Queue()
        tasks = [
            asyncio.create_task(_pump(self._events, merged)),
            asyncio.create_task(_pump(background, merged)),
        ]
        remaining = len(tasks)
        try:
            while remaining:
                item = await merged.get()
                if item is _END:
                    remaining -= 1
                    continue
                if not await self._handle(item):
                    break
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _handle(self, event: ViewEvent | BackgroundEvent) -> bool:
        """Handle one event; return False when the loop should stop."""
        match event:
            case Initiated():
                await self._update_title()
                await self._update_devices()
            case DeviceSelected(device_id=device_id):
                await self.select_device(device_id)
                _log.info("Selected device %s", device_id)
            case UsbPinEntered(pin=pin):
                try:
                    await self.flow_controller.enter_client_pin(pin)
                except Exception:
                    _log.error("Failed to send pin to device")
            case CredentialSelected(credential_id=credential_id):
                _log.info(
                    "Credential selected: %r. Current Device: %r",
                    credential_id,
                    self.selected_device,
                )
                try:
                    await self.flow_controller.select_credential(credential_id)
                except Exception:
                    _log.error(_CREDENTIAL_SELECTION_FAILED)
                    await self._send(Failed(_CREDENTIAL_SELECTION_FAILED))
            case UserCancelled():
                return False
            case UsbStateChanged(state=state):
                await self._handle_usb(state)
            case HybridQrStateChanged(state=state):
                return await self._handle_hybrid(state)
            case _:
                raise TypeError(f"unexpected event: {event!r}")
        return True

    async def _handle_usb(self, state: UsbState) -> None:
        kind = state.kind
        if kind is UsbStateKind.CONNECTED:
            _log.info("Found USB device")
        elif kind is UsbStateKind.NEEDS_PIN:
            await self._send(UsbNeedsPin(state.attempts_left))
        elif kind is UsbStateKind.NEEDS_USER_VERIFICATION:
            await self._send(UsbNeedsUserVerification(state.attempts_left))
        elif kind is UsbStateKind.NEEDS_USER_PRESENCE:
            await self._send(UsbNeedsUserPresence())
        elif kind is UsbStateKind.COMPLETED:
            await self._send(Completed())
        elif kind is UsbStateKind.SELECTING_DEVICE:
            await self._send(SelectingDevice())
        elif kind is UsbStateKind.SELECT_CREDENTIAL:
            await self._send(SetCredentials(state.creds))
        elif kind is UsbStateKind.FAILED:
            assert state.error is not None
            await self._send(Failed(failure_message(state.error)))

    async def _handle_hybrid(self, state: HybridState) -> bool:
        self.hybrid_qr_state = state
        _log.debug("Received HybridQrState::%r", state)
        kind = state.kind
        if kind is HybridStateKind.STARTED:
            assert state.qr_code is not None
            self.hybrid_qr_code_data = state.qr_code.encode("utf-8")
            await self._send(HybridNeedsQrCode(state.qr_code))
            return True
        self.hybrid_qr_code_data = None
        if kind is HybridStateKind.CONNECTING:
            await self._send(HybridConnecting())
        elif kind is HybridStateKind.CONNECTED:
            await self._send(HybridConnected())
        elif kind is HybridStateKind.COMPLETED:
            await self._send(Completed())
        elif kind is HybridStateKind.USER_CANCELLED:
            return False
        elif kind is HybridStateKind.FAILED:
            await self._send(Failed(_HYBRID_FAILED))
        return True