"""Shared data model for the credential service and its trusted UI."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Credential:
    """A credential identity that a user may pick from."""

    id: str
    name: str
    username: str | None = None


class CredentialType(Enum):
    """Kinds of credentials the service handles."""

    PASSKEY = "Passkey"


class Transport(Enum):
    """How an authenticator is reached."""

    BLE = "BLE"
    HYBRID_LINKED = "HybridLinked"
    HYBRID_QR = "HybridQr"
    INTERNAL = "Internal"
    NFC = "NFC"
    USB = "USB"

    def as_str(self) -> str:
        """Return the wire name of this transport."""
        return self.value

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> Transport:
        """Parse a wire name; raise ValueError for unknown names."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unrecognized transport: {value}") from None


@dataclass(frozen=True)
class Device:
    """An authenticator reachable over a transport."""

    id: str
    transport: Transport


class Operation(Enum):
    """The kind of ceremony a request performs."""

    CREATE = "Create"
    GET = "Get"


_CAPABILITY_KEYS = {
    "conditional_create": "conditionalCreate",
    "conditional_get": "conditionalGet",
    "hybrid_transport": "hybridTransport",
    "passkey_platform_authenticator": "passkeyPlatformAuthenticator",
    "user_verifying_platform_authenticator": "userVerifyingPlatformAuthenticator",
    "related_origins": "relatedOrigins",
    "signal_all_accepted_credentials": "signalAllAcceptedCredentials",
    "signal_current_user_details": "signalCurrentUserDetails",
    "signal_unknown_credential": "signalUnknownCredential",
}


@dataclass(frozen=True)
class GetClientCapabilitiesResponse:
    """Client capabilities as reported to relying parties."""

    conditional_create: bool = False
    conditional_get: bool = False
    hybrid_transport: bool = False
    passkey_platform_authenticator: bool = False
    user_verifying_platform_authenticator: bool = False
    related_origins: bool = False
    signal_all_accepted_credentials: bool = False
    signal_current_user_details: bool = False
    signal_unknown_credential: bool = False

    def to_dict(self) -> dict[str, bool]:
        """Return the capabilities keyed by their camelCase names."""
        return {wire: getattr(self, attr) for attr, wire in _CAPABILITY_KEYS.items()}


class ErrorKind(Enum):
    """Categories of failure when talking to an authenticator."""

    AUTHENTICATOR_ERROR = "AuthenticatorError"
    NO_CREDENTIALS = "NoCredentials"
    CREDENTIAL_EXCLUDED = "CredentialExcluded"
    PIN_ATTEMPTS_EXHAUSTED = "PinAttemptsExhausted"
    INTERNAL = "Internal"


class CredentialError(Exception):
    """A failure in a credential flow; ``detail`` is set for internal errors."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        super().__init__(kind, detail)
        self.kind = kind
        self.detail = detail if kind is ErrorKind.INTERNAL else ""

    def __str__(self) -> str:
        if self.kind is ErrorKind.INTERNAL:
            return f"InternalError: {self.detail}"
        return self.kind.value

    def __repr__(self) -> str:
        return f"CredentialError({self.kind!r}, {self.detail!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialError):
            return NotImplemented
        return (self.kind, self.detail) == (other.kind, other.detail)

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))


class WebAuthnError(Enum):
    """Errors a WebAuthn ceremony reports to the calling page."""

    ABORT_ERROR = "AbortError"
    CONSTRAINT_ERROR = "ConstraintError"
    INVALID_STATE_ERROR = "InvalidStateError"
    NOT_SUPPORTED_ERROR = "NotSupportedError"
    SECURITY_ERROR = "SecurityError"
    NOT_ALLOWED_ERROR = "NotAllowedError"
    TYPE_ERROR = "TypeError"


class HybridStateKind(Enum):
    """Stages of a hybrid (QR code) flow."""

    IDLE = "Idle"
    STARTED = "Started"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    COMPLETED = "Completed"
    USER_CANCELLED = "UserCancelled"
    FAILED = "Failed"


@dataclass(frozen=True)
class HybridState:
    """State of a hybrid flow; ``qr_code`` is carried only while started."""

    kind: HybridStateKind = HybridStateKind.IDLE
    qr_code: str | None = None

    def __post_init__(self) -> None:
        if self.kind is HybridStateKind.STARTED:
            if self.qr_code is None:
                raise ValueError("a started hybrid state needs QR code data")
        elif self.qr_code is not None:
            raise ValueError(f"hybrid state {self.kind.value} carries no QR code")


class UsbStateKind(Enum):
    """Stages of a USB authenticator flow."""

    IDLE = "Idle"
    WAITING = "Waiting"
    SELECTING_DEVICE = "SelectingDevice"
    CONNECTED = "Connected"
    NEEDS_PIN = "NeedsPin"
    NEEDS_USER_VERIFICATION = "NeedsUserVerification"
    NEEDS_USER_PRESENCE = "NeedsUserPresence"
    SELECT_CREDENTIAL = "SelectCredential"
    COMPLETED = "Completed"
    FAILED = "Failed"


_ATTEMPT_KINDS = {UsbStateKind.NEEDS_PIN, UsbStateKind.NEEDS_USER_VERIFICATION}


@dataclass(frozen=True)
class UsbState:
    """State of a USB flow with the data that belongs to its stage."""

    kind: UsbStateKind = UsbStateKind.IDLE
    attempts_left: int | None = None
    creds: tuple[Credential, ...] = field(default_factory=tuple)
    error: CredentialError | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "creds", tuple(self.creds))
        if self.attempts_left is not None:
            if self.kind not in _ATTEMPT_KINDS:
                raise ValueError(f"USB state {self.kind.value} carries no attempt count")
            if self.attempts_left < 0:
                raise ValueError("attempts_left must not be negative")
        if self.creds and self.kind is not UsbStateKind.SELECT_CREDENTIAL:
            raise ValueError(f"USB state {self.kind.value} carries no credentials")
        if (self.kind is UsbStateKind.FAILED) != (self.error is not None):
            raise ValueError("an error is carried by, and only by, a failed USB state")


class BackgroundEvent:
    """An event pushed from the credential service to the UI."""

    __slots__ = ()


@dataclass(frozen=True)
class UsbStateChanged(BackgroundEvent):
    state: UsbState


@dataclass(frozen=True)
class HybridQrStateChanged(BackgroundEvent):
    state: HybridState


class ViewUpdate:
    """An instruction from the view model to the displayed view."""

    __slots__ = ()


@dataclass(frozen=True)
class SetTitle(ViewUpdate):
    title: str


@dataclass(frozen=True)
class SetDevices(ViewUpdate):
    devices: tuple[Device, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "devices", tuple(self.devices))


@dataclass(frozen=True)
class SetCredentials(ViewUpdate):
    credentials: tuple[Credential, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "credentials", tuple(self.credentials))


@dataclass(frozen=True)
class WaitingForDevice(ViewUpdate):
    device: Device


@dataclass(frozen=True)
class SelectingDevice(ViewUpdate):
    pass


@dataclass(frozen=True)
class UsbNeedsPin(ViewUpdate):
    attempts_left: int | None = None


@dataclass(frozen=True)
class UsbNeedsUserVerification(ViewUpdate):
    attempts_left: int | None = None


@dataclass(frozen=True)
class UsbNeedsUserPresence(ViewUpdate):
    pass


@dataclass(frozen=True)
class HybridNeedsQrCode(ViewUpdate):
    qr_code: str


@dataclass(frozen=True)
class HybridConnecting(ViewUpdate):
    pass


@dataclass(frozen=True)
class HybridConnected(ViewUpdate):
    pass


@dataclass(frozen=True)
class Completed(ViewUpdate):
    pass


@dataclass(frozen=True)
class Cancelled(ViewUpdate):
    pass


@dataclass(frozen=True)
class Failed(ViewUpdate):
    message: str


class FlowController(ABC):
    """Channel from the trusted UI to the credential service.

    Implementations raise an exception when a call fails.
    """

    @abstractmethod
    async def get_available_public_key_devices(self) -> list[Device]:
        """Return the devices that can serve a public key credential."""

    @abstractmethod
    async def get_hybrid_credential(self) -> None:
        """Start the hybrid (QR code) credential flow."""

    @abstractmethod
    async def get_usb_credential(self) -> None:
        """Start the USB credential flow."""

    @abstractmethod
    async def initiate_event_stream(self) -> AsyncIterator[BackgroundEvent]:
        """Return a stream of background events from the service."""

    @abstractmethod
    async def enter_client_pin(self, pin: str) -> None:
        """Send the PIN the user entered to the authenticator."""

    @abstractmethod
    async def select_credential(self, credential_id: str) -> None:
        """Choose one of several credentials offered by the authenticator."""

    @abstractmethod
    async def cancel_request(self, request_id: int) -> None:
        """Cancel the request with the given identifier."""


def _as_tuple(items: Iterable) -> tuple:
    return tuple(items)