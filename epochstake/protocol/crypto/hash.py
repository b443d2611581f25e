# MIT License
# Copyright (c) 2025 Hashborn

import hashlib


def sha256(data: bytes) -> bytes:
    """Returns SHA256 hash of bytes."""
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """Returns SHA256 hash of bytes as hex string."""
    return sha256(data).hex()


def deposit_id(staker: str, nonce: int, created_at: int) -> str:
    """Content-derived deposit identifier: sha256(staker | nonce | created_at)."""
    payload = f"{staker}|{nonce}|{created_at}".encode("utf-8")
    return sha256_hex(payload)
