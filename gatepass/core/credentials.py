"""Credential codec: seal attendee claims and render them as a QR code.

A credential is a Fernet token wrapping a small JSON document::

    {"attendee_id": 42, "event_id": 7, "issued_at": 1700000000,
     "registration_code": "REG-AB12CD34", "tag": "<sha256 hex>"}

``tag`` is ``sha256(attendee_id + registration_code + secret)``. The tag is
checked by the verifier even though Fernet already authenticates the token,
so claims decoded from the pre-encryption plain JSON format go through the
same check.
"""
import base64
import hashlib
import io
import json
import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import qrcode
from cryptography.fernet import Fernet, InvalidToken
from qrcode.exceptions import DataOverflowError

from gatepass.core.constants import QR_BACK_COLOR, QR_BORDER_MODULES, QR_FILL_COLOR
from gatepass.core.exceptions import CredentialTooLargeError

SCHEME_SEALED = "sealed"
SCHEME_LEGACY = "legacy"

# Historical key names written by the plain JSON credentials
LEGACY_KEY_ALIASES = {
    "registration_id": "registration_code",
    "hash": "tag",
    "timestamp": "issued_at",
}


@dataclass(frozen=True)
class AttendeeIdentity:
    """Claims carried by a credential."""
    attendee_id: int
    registration_code: str
    event_id: int
    issued_at: int


@dataclass(frozen=True)
class DecodedClaims:
    """Claims recovered from scanned text, plus the scheme that decoded them."""
    claims: dict
    scheme: str


def derive_fernet_key(secret: str) -> bytes:
    """Fernet wants 32 url-safe base64 bytes; stretch the shared secret with SHA-256."""
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def compute_integrity_tag(attendee_id: Any, registration_code: Any, secret: str) -> str:
    """Return the hex SHA-256 binding an attendee id and registration code to the secret."""
    message = f"{attendee_id}{registration_code}{secret}"
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


class SealedClaimsDecoder:
    """Current format: Fernet token around compact JSON."""

    scheme = SCHEME_SEALED

    def __init__(self, fernet: Fernet):
        self._fernet = fernet

    def decode(self, raw: str) -> Optional[dict]:
        try:
            plaintext = self._fernet.decrypt(raw.encode("utf-8"))
            claims = json.loads(plaintext)
        except (InvalidToken, ValueError, UnicodeError):
            return None
        return claims if isinstance(claims, dict) else None


class LegacyJsonClaimsDecoder:
    """Pre-migration format: the claims as plain JSON, no encryption."""

    scheme = SCHEME_LEGACY

    def decode(self, raw: str) -> Optional[dict]:
        try:
            claims = json.loads(raw)
        except (ValueError, RecursionError):
            return None
        if not isinstance(claims, dict):
            return None

        normalized = dict(claims)
        for old_key, new_key in LEGACY_KEY_ALIASES.items():
            if old_key in normalized and new_key not in normalized:
                normalized[new_key] = normalized.pop(old_key)
        return normalized


class CredentialCodec:
    """Seals identities, renders QR images and parses scanned text.

    The secret is fixed for the lifetime of the codec; build one at startup
    from ``settings.SECRET_KEY`` and share it.
    """

    def __init__(
        self,
        secret: str,
        image_size: int = 300,
        max_version: int = 25,
        border: int = QR_BORDER_MODULES,
    ):
        if not secret:
            raise ValueError("Credential secret must not be empty")
        self._secret = secret
        self._fernet = Fernet(derive_fernet_key(secret))
        self.image_size = image_size
        self.max_version = max_version
        self.border = border
        self.decoders: Sequence = (
            SealedClaimsDecoder(self._fernet),
            LegacyJsonClaimsDecoder(),
        )

    def integrity_tag(self, attendee_id: Any, registration_code: Any) -> str:
        return compute_integrity_tag(attendee_id, registration_code, self._secret)

    def seal(self, identity: AttendeeIdentity) -> str:
        """Serialize and encrypt the identity claims; returns the QR payload text."""
        claims = {
            "attendee_id": identity.attendee_id,
            "registration_code": identity.registration_code,
            "event_id": identity.event_id,
            "issued_at": identity.issued_at,
            "tag": self.integrity_tag(identity.attendee_id, identity.registration_code),
        }
        plaintext = json.dumps(claims, separators=(",", ":"), sort_keys=True)
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def render_image(self, payload: str) -> bytes:
        """Render ``payload`` as a PNG QR code at error correction level H.

        Raises:
            CredentialTooLargeError: payload needs a QR version above ``max_version``
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=1,
            border=self.border,
        )
        qr.add_data(payload)
        try:
            qr.make(fit=True)
        except DataOverflowError:
            raise CredentialTooLargeError(len(payload), self.max_version)

        if qr.version > self.max_version:
            raise CredentialTooLargeError(len(payload), self.max_version)

        # Scale modules so the image edge is at least image_size pixels
        total_modules = qr.modules_count + 2 * self.border
        qr.box_size = max(1, math.ceil(self.image_size / total_modules))

        img = qr.make_image(fill_color=QR_FILL_COLOR, back_color=QR_BACK_COLOR)
        buffer = io.BytesIO()
        img.save(buffer)
        return buffer.getvalue()

    def parse_scanned_text(self, raw: str) -> Optional[DecodedClaims]:
        """Try each decoder in order; ``None`` when no format recognises the text."""
        text = raw.strip()
        if not text:
            return None
        for decoder in self.decoders:
            claims = decoder.decode(text)
            if claims is not None:
                return DecodedClaims(claims=claims, scheme=decoder.scheme)
        return None
