from .credential_store import CredentialStore
from .issuance import IssuedCredential, issue_credential, reissue_credential
from .presence import PresenceSnapshot, PresenceStateMachine, ScanOutcome, ScanResult
from .verifier import CredentialVerifier, VerificationError, VerificationResult

__all__ = [
    # store
    "CredentialStore",
    # issuance
    "IssuedCredential",
    "issue_credential",
    "reissue_credential",
    # verification
    "CredentialVerifier",
    "VerificationError",
    "VerificationResult",
    # presence
    "PresenceSnapshot",
    "PresenceStateMachine",
    "ScanOutcome",
    "ScanResult",
]
