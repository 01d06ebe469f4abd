# FILE: pwa2apk/services/encryption_service.py
import os
from cryptography.fernet import Fernet


def _get_fernet() -> Fernet:
    key = os.environ.get("ENCRYPTION_KEY", "")
    if not key:
        raise RuntimeError("ENCRYPTION_KEY not configured in environment")
    return Fernet(key.encode())


def encrypt_secret(value: str) -> str:
    """Encrypt a token for storage."""
    return _get_fernet().encrypt(value.encode()).decode()


def decrypt_secret(encrypted: str) -> str:
    """Decrypt a stored token."""
    return _get_fernet().decrypt(encrypted.encode()).decode()


def mask_secret(value: str) -> str:
    """Mask a secret to show only its last 4 characters."""
    if not value or len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"
