"""
Vault Crypto Core — Key derivation and AES-GCM sealing of the cache file.

Implements the password-less encryption used on Linux and macOS:
- Key: PBKDF2-HMAC-SHA256("<app>|<machine-id>|<user>", salt, 100k) → 32 bytes
- Blob: AES-256-GCM → [nonce 12B][tag 16B][ciphertext]

Security Note:
    Never log plaintext, ciphertext or key material.
    Nonces are random 96-bit; collision probability negligible under normal usage.
    Derived keys live in a bytearray that is zeroed as soon as the cipher
    operation finishes. CPython may still hold transient copies; this bounds
    the lifetime of the key, it does not guarantee erasure.
"""
import os
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import CryptoError

logger = logging.getLogger("neutron.cache")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
KEY_LENGTH = 32  # AES-256
PBKDF2_ITERATIONS = 100_000

# Not secret; only separates this key domain from any other PBKDF2 use.
DERIVATION_SALT = b"NeutronDriveCach"

ENTROPY_SEPARATOR = "|"


def build_entropy(app_name: str, machine_id: str, username: str) -> bytes:
    """Combine app, machine and user identity into KDF input.

    Returns:
        UTF-8 bytes of ``"<app_name>|<machine_id>|<username>"``.
    """
    return ENTROPY_SEPARATOR.join((app_name, machine_id, username)).encode("utf-8")


def derive_key(entropy: bytes) -> bytearray:
    """Derive a 32-byte AES key from host entropy using PBKDF2-HMAC-SHA256.

    Args:
        entropy: Output of :func:`build_entropy`.

    Returns:
        Mutable key buffer; callers must wipe it with :func:`wipe`.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=DERIVATION_SALT,
        iterations=PBKDF2_ITERATIONS,
    )
    return bytearray(kdf.derive(entropy))


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


def seal(plaintext: bytes, entropy: bytes) -> bytes:
    """Encrypt plaintext with a key derived from entropy.

    Format: [nonce 12B][tag 16B][ciphertext]

    Args:
        plaintext: Data to encrypt.
        entropy: Host entropy used for key derivation.

    Returns:
        Sealed blob.
    """
    key = derive_key(entropy)
    try:
        cipher = AESGCM(key)
        nonce = os.urandom(NONCE_SIZE)
        # cryptography appends the tag; the file layout puts it first
        sealed = cipher.encrypt(nonce, plaintext, None)
    finally:
        wipe(key)
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return nonce + tag + ct


def unseal(blob: bytes, entropy: bytes) -> bytes:
    """Decrypt a blob produced by :func:`seal`.

    Args:
        blob: Sealed data in format [nonce 12B][tag 16B][ciphertext].
        entropy: Host entropy used for key derivation.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        CryptoError: If the blob is truncated or fails authentication.
    """
    _min = NONCE_SIZE + TAG_SIZE
    if len(blob) < _min:
        raise CryptoError(
            f"Encrypted data too short: {len(blob)} bytes (minimum {_min})"
        )
    nonce = blob[:NONCE_SIZE]
    tag = blob[NONCE_SIZE:_min]
    ct = blob[_min:]
    key = derive_key(entropy)
    try:
        return AESGCM(key).decrypt(nonce, ct + tag, None)
    except InvalidTag as err:
        raise CryptoError("Encrypted data failed authentication") from err
    finally:
        wipe(key)
