"""
AES-256-CBC cipher engine with encrypt-then-MAC.

Stored ciphertext layout::

    [CBC ciphertext : n * 16 bytes, PKCS#7 padded]
    [HMAC-SHA256 tag: 32 bytes over iv || CBC ciphertext]

The IV travels separately (16 bytes, fresh per call).
"""

from __future__ import annotations

import hmac
import os
from typing import Tuple

from cryptography.hazmat.primitives import hashes, padding as sym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.hmac import HMAC

from ..exceptions import DecryptionFailed, MalformedCiphertext
from .key_derivation import KeyMaterial

BLOCK_SIZE: int = 16   # bytes
IV_SIZE: int = BLOCK_SIZE
TAG_SIZE: int = 32


def _tag(mac_key: bytes, iv: bytes, body: bytes) -> bytes:
    h = HMAC(mac_key, hashes.SHA256())
    h.update(iv)
    h.update(body)
    return h.finalize()


def encrypt(key: KeyMaterial, plaintext: bytes) -> Tuple[bytes, bytes]:
    """Encrypt ``plaintext`` and return ``(iv, ciphertext)``; the tag is appended to the ciphertext."""
    padder = sym_padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    iv = os.urandom(IV_SIZE)
    encryptor = Cipher(algorithms.AES(key.encryption_key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()
    return iv, body + _tag(key.mac_key, iv, body)


def check_structure(iv: bytes, ciphertext: bytes) -> None:
    """Raise MalformedCiphertext if the stored pair cannot be a product of ``encrypt``."""
    if len(iv) != IV_SIZE:
        raise MalformedCiphertext()
    body_len = len(ciphertext) - TAG_SIZE
    if body_len < BLOCK_SIZE or body_len % BLOCK_SIZE != 0:
        raise MalformedCiphertext()


def decrypt(key: KeyMaterial, iv: bytes, ciphertext: bytes) -> bytes:
    """
    Verify and decrypt. A wrong key and corrupted data both raise the same
    ``DecryptionFailed``; the tag check runs in constant time before any
    block is decrypted.
    """
    check_structure(iv, ciphertext)
    body, tag = ciphertext[:-TAG_SIZE], ciphertext[-TAG_SIZE:]

    if not hmac.compare_digest(_tag(key.mac_key, iv, body), tag):
        raise DecryptionFailed()

    decryptor = Cipher(algorithms.AES(key.encryption_key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()
    unpadder = sym_padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError:
        raise DecryptionFailed() from None
