"""
Passphrase key derivation
=========================

PBKDF2-HMAC-SHA256 stretches a passphrase into 64 bytes of key material:

    bytes  0-31  AES-256 encryption key
    bytes 32-63  HMAC-SHA256 authentication key

The derivation is a pure function of ``(passphrase, salt, iterations)``.
Salt and iteration count are stored with each image record (neither is
secret), so the key can always be rebuilt from the passphrase alone.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import InvalidKeyInput

KEY_SIZE: int = 32     # AES-256
MAC_KEY_SIZE: int = 32
SALT_SIZE: int = 16


@dataclass(frozen=True)
class KeyMaterial:
    """Ephemeral key pair. Never persisted; ``repr`` is redacted."""

    encryption_key: bytes = field(repr=False)
    mac_key: bytes = field(repr=False)


def new_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def derive_key(passphrase: str, salt: bytes, iterations: int) -> KeyMaterial:
    """
    Derive the encryption and MAC keys for one image record.

    Parameters
    ----------
    passphrase : str
        User-supplied passphrase. Must be non-empty.
    salt : bytes
        16-byte per-record salt.
    iterations : int
        PBKDF2 iteration count recorded alongside the salt.
    """
    if not passphrase:
        raise InvalidKeyInput()
    if not isinstance(passphrase, str):
        raise InvalidKeyInput("Passphrase must be a string")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
        raise InvalidKeyInput(f"Salt must be {SALT_SIZE} bytes")
    if iterations <= 0:
        raise InvalidKeyInput("Iteration count must be positive")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE + MAC_KEY_SIZE,
        salt=bytes(salt),
        iterations=iterations,
    )
    material = kdf.derive(passphrase.encode("utf-8"))
    return KeyMaterial(encryption_key=material[:KEY_SIZE], mac_key=material[KEY_SIZE:])
