"""Exceptions raised by the credential and presence services.

Verification failures are not exceptions: they come back as
``VerificationError`` values so the API layer can map each one to its own
status code.
"""


class GatepassError(Exception):
    """Base class for application errors."""


class CredentialGenerationError(GatepassError):
    """A credential could not be rendered into a scannable image."""


class CredentialTooLargeError(CredentialGenerationError):
    """The sealed payload does not fit the configured QR symbol."""

    def __init__(self, payload_length: int, max_version: int):
        self.payload_length = payload_length
        self.max_version = max_version
        super().__init__(
            f"Sealed payload of {payload_length} characters does not fit "
            f"a QR code of version {max_version} at error correction level H"
        )


class CredentialExistsError(GatepassError):
    """The attendee already holds a live credential."""


class PresenceConflictError(GatepassError):
    """Concurrent scans kept invalidating the observed presence state."""
