"""Wire forms of the requests, responses and records exchanged over D-Bus."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from credentialsd.model import Credential, CredentialError, Device, ErrorKind, Operation, Transport

_INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."
_PUBLIC_KEY_TYPE = "public-key"
_MAX_REQUEST_ID = 2**32


class VariantError(ValueError):
    """A D-Bus value did not have the expected shape."""


def _as_mapping(fields: Any) -> Mapping[str, Any]:
    if not isinstance(fields, Mapping):
        raise VariantError(f"expected a dictionary, got {type(fields).__name__}")
    return fields


def _check_type(key: str, value: Any, kind: type) -> Any:
    if kind is bool:
        ok = isinstance(value, bool)
    elif kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise VariantError(f"field `{key}` must be {kind.__name__}, got {type(value).__name__}")
    return value


def _required(fields: Mapping[str, Any], key: str, kind: type) -> Any:
    try:
        value = fields[key]
    except KeyError:
        raise VariantError(f"missing field `{key}`") from None
    return _check_type(key, value, kind)


def _optional(fields: Mapping[str, Any], key: str, kind: type) -> Any:
    value = fields.get(key)
    if value is None:
        return None
    return _check_type(key, value, kind)


class ServiceError(Enum):
    """Error codes the credential service reports for a failed flow."""

    AUTHENTICATOR_ERROR = "AuthenticatorError"
    NO_CREDENTIALS = "NoCredentials"
    CREDENTIAL_EXCLUDED = "CredentialExcluded"
    PIN_ATTEMPTS_EXHAUSTED = "PinAttemptsExhausted"
    INTERNAL = "Internal"

    @classmethod
    def parse(cls, value: str) -> ServiceError:
        """Map an error code to a service error; unknown codes are internal errors."""
        try:
            return cls(value)
        except ValueError:
            return cls.INTERNAL

    def to_error(self) -> CredentialError:
        """Return the model error this code stands for."""
        if self is ServiceError.INTERNAL:
            return CredentialError(ErrorKind.INTERNAL, _INTERNAL_ERROR_MESSAGE)
        return CredentialError(ErrorKind(self.value))


@dataclass(frozen=True)
class CreatePublicKeyCredentialRequest:
    request_json: str


@dataclass(frozen=True)
class CreateCredentialRequest:
    """A request to create a credential, as sent by a client."""

    type: str
    origin: str | None = None
    is_same_origin: bool | None = None
    public_key: CreatePublicKeyCredentialRequest | None = None

    @classmethod
    def from_dict(cls, fields: Mapping[str, Any]) -> CreateCredentialRequest:
        """Build a request from its D-Bus dictionary; raise VariantError if malformed."""
        fields = _as_mapping(fields)
        public_key = _optional(fields, "publicKey", Mapping)
        return cls(
            type=_required(fields, "type", str),
            origin=_optional(fields, "origin", str),
            is_same_origin=_optional(fields, "is_same_origin", bool),
            public_key=(
                None
                if public_key is None
                else CreatePublicKeyCredentialRequest(_required(public_key, "request_json", str))
            ),
        )


@dataclass(frozen=True)
class CreatePublicKeyCredentialResponse:
    registration_response_json: str


@dataclass(frozen=True)
class CreateCredentialResponse:
    """The reply to a credential creation request."""

    type: str
    public_key: CreatePublicKeyCredentialResponse | None = None

    @classmethod
    def from_public_key(cls, response: CreatePublicKeyCredentialResponse) -> CreateCredentialResponse:
        """Wrap a public key registration response."""
        return cls(type=_PUBLIC_KEY_TYPE, public_key=response)

    def to_dict(self) -> dict[str, Any]:
        """Return the D-Bus dictionary form; absent fields are left out."""
        result: dict[str, Any] = {"type": self.type}
        if self.public_key is not None:
            result["public_key"] = {
                "registration_response_json": self.public_key.registration_response_json
            }
        return result


@dataclass(frozen=True)
class GetPublicKeyCredentialRequest:
    request_json: str


@dataclass(frozen=True)
class GetCredentialRequest:
    """A request to use an existing credential, as sent by a client."""

    type: str
    origin: str | None = None
    is_same_origin: bool | None = None
    public_key: GetPublicKeyCredentialRequest | None = None

    @classmethod
    def from_dict(cls, fields: Mapping[str, Any]) -> GetCredentialRequest:
        """Build a request from its D-Bus dictionary; raise VariantError if malformed."""
        fields = _as_mapping(fields)
        public_key = _optional(fields, "publicKey", Mapping)
        return cls(
            type=_required(fields, "type", str),
            origin=_optional(fields, "origin", str),
            is_same_origin=_optional(fields, "is_same_origin", bool),
            public_key=(
                None
                if public_key is None
                else GetPublicKeyCredentialRequest(_required(public_key, "request_json", str))
            ),
        )


@dataclass(frozen=True)
class GetPublicKeyCredentialResponse:
    authentication_response_json: str


@dataclass(frozen=True)
class GetCredentialResponse:
    """The reply to a credential assertion request."""

    type: str
    public_key: GetPublicKeyCredentialResponse | None = None

    @classmethod
    def from_public_key(cls, response: GetPublicKeyCredentialResponse) -> GetCredentialResponse:
        """Wrap a public key authentication response."""
        return cls(type=_PUBLIC_KEY_TYPE, public_key=response)

    def to_dict(self) -> dict[str, Any]:
        """Return the D-Bus dictionary form; absent fields are left out."""
        result: dict[str, Any] = {"type": self.type}
        if self.public_key is not None:
            result["public_key"] = {
                "authentication_response_json": self.public_key.authentication_response_json
            }
        return result


@dataclass(frozen=True)
class ViewRequest:
    """Asks the UI to show a window for a request."""

    operation: Operation
    id: int

    def __post_init__(self) -> None:
        if not 0 <= self.id < _MAX_REQUEST_ID:
            raise ValueError(f"request id out of range: {self.id}")


def credential_to_wire(credential: Credential) -> dict[str, str]:
    """Return the D-Bus dictionary of a credential; a missing username is empty."""
    return {
        "id": credential.id,
        "name": credential.name,
        "username": credential.username or "",
    }


def credential_from_wire(fields: Mapping[str, Any]) -> Credential:
    """Build a credential from its D-Bus dictionary; an empty username means none."""
    fields = _as_mapping(fields)
    username = _optional(fields, "username", str)
    return Credential(
        id=_required(fields, "id", str),
        name=_required(fields, "name", str),
        username=username or None,
    )


def device_to_wire(device: Device) -> dict[str, str]:
    """Return the D-Bus dictionary of a device."""
    return {"id": device.id, "transport": device.transport.as_str()}


def device_from_wire(fields: Mapping[str, Any]) -> Device:
    """Build a device from its D-Bus dictionary; raise VariantError if malformed."""
    fields = _as_mapping(fields)
    device_id = _required(fields, "id", str)
    transport_name = _required(fields, "transport", str)
    try:
        transport = Transport.parse(transport_name)
    except ValueError as err:
        raise VariantError(str(err)) from None
    return Device(id=device_id, transport=transport)