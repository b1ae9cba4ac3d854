"""COSE key and algorithm identifiers."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum, auto

_log = logging.getLogger(__name__)


class CoseError(Exception):
    """Base error for COSE key handling."""


class InvalidKeyError(CoseError):
    """A key could not be parsed or is malformed."""


class UnsupportedAlgorithmError(CoseError):
    """The algorithm is not supported."""


class CoseKeyType(Enum):
    """Key types the service can produce."""

    ES256_P256 = auto()
    EDDSA_ED25519 = auto()
    RS256 = auto()


_CTAP_ES256 = -7
_CTAP_EDDSA = -8
_CTAP_TOTP = -9


class CoseKeyAlgorithmIdentifier(IntEnum):
    """COSE algorithm identifiers."""

    ES256 = -7
    EDDSA = -8
    RS256 = -257

    @classmethod
    def from_ctap(cls, value: int) -> CoseKeyAlgorithmIdentifier:
        """Map an algorithm reported by a CTAP2 authenticator.

        Only ES256 and EdDSA are accepted; anything else raises
        UnsupportedAlgorithmError.
        """
        if value == _CTAP_EDDSA:
            return cls.EDDSA
        if value == _CTAP_ES256:
            return cls.ES256
        if value == _CTAP_TOTP:
            _log.debug("Unknown public key algorithm type: %r", value)
        raise UnsupportedAlgorithmError(f"unsupported COSE algorithm: {value}")


class CoseEllipticCurveIdentifier(IntEnum):
    """COSE elliptic curve identifiers."""

    P256 = 1
    P384 = 2
    P521 = 3
    ED25519 = 6