"""Cache Vault — Encryption at rest for the persistent cache file.

Security Note (Threat Model):
    The AES-GCM key is derived from machine id, OS user name and a fixed
    salt; nothing secret is required from the user. Anyone able to run code
    as the same user on the same machine can derive the same key. The
    protection targets copies of the file taken off the machine (backups,
    synced home directories) and other local users, not malware running as
    the owner. On Windows, DPAPI gives the same user-scoped guarantee.
"""

from .protector import (
    APP_NAME,
    BlobProtector,
    AesGcmProtector,
    DpapiProtector,
    default_protector,
)
from .crypto import derive_key, seal, unseal
from .entropy import get_machine_id, get_username

__all__ = [
    "APP_NAME",
    "BlobProtector",
    "AesGcmProtector",
    "DpapiProtector",
    "default_protector",
    "derive_key",
    "seal",
    "unseal",
    "get_machine_id",
    "get_username",
]
