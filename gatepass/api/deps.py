"""Shared API dependencies.

The codec, store, verifier and state machine are built once per process from
settings; tests swap them through ``app.dependency_overrides``.
"""
from functools import lru_cache

from fastapi import Depends

from gatepass.core.config import settings
from gatepass.core.credentials import CredentialCodec
from gatepass.core.security import verify_admin_token, verify_staff_token
from gatepass.core.storage import LocalImageStorage
from gatepass.db import get_db
from gatepass.services import CredentialStore, CredentialVerifier, PresenceStateMachine


@lru_cache
def get_codec() -> CredentialCodec:
    return CredentialCodec(
        secret=settings.SECRET_KEY,
        image_size=settings.CREDENTIAL_IMAGE_SIZE,
        max_version=settings.CREDENTIAL_QR_MAX_VERSION,
    )


@lru_cache
def get_credential_store() -> CredentialStore:
    return CredentialStore(LocalImageStorage(settings.CREDENTIAL_STORAGE_DIR))


def get_verifier(codec: CredentialCodec = Depends(get_codec)) -> CredentialVerifier:
    return CredentialVerifier(codec)


def get_presence_machine(store: CredentialStore = Depends(get_credential_store)) -> PresenceStateMachine:
    return PresenceStateMachine(store, allow_reentry=settings.ALLOW_REENTRY)


__all__ = [
    "get_db",
    "verify_admin_token",
    "verify_staff_token",
    "get_codec",
    "get_credential_store",
    "get_verifier",
    "get_presence_machine",
]
