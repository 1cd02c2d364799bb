from datetime import datetime, timezone
from typing import Callable, Optional
import base64
import binascii
import hashlib
import secrets

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel

from shadanga.client.errors import DecryptionError
from shadanga.core.constants import EncryptionAlgorithmEnum

PACKAGE_VERSION = 1
KEY_BYTES = 32
IV_BYTES = 16
ENCRYPT_BLOCK_BYTES = 1024 * 1024


def generate_key() -> str:
    """A fresh 256-bit key, hex encoded."""
    return secrets.token_hex(KEY_BYTES)


def hash_key(hex_key: str) -> str:
    return hashlib.sha256(hex_key.encode("ascii")).hexdigest()


def checksum(data: str) -> str:
    return hashlib.sha256(data.encode("ascii")).hexdigest()


class PackageMetadata(BaseModel):
    lesson_id: int
    original_size: int
    encrypted_at: datetime
    checksum: str


class EncryptedAudioPackage(BaseModel):
    version: int = PACKAGE_VERSION
    algorithm: str = EncryptionAlgorithmEnum.AES_256_CBC.value
    iv: str
    data: str
    metadata: PackageMetadata


def _cipher(hex_key: str, iv: bytes) -> Cipher:
    try:
        key = bytes.fromhex(hex_key)
    except ValueError as e:
        raise DecryptionError("The encryption key is malformed.") from e
    if len(key) != KEY_BYTES:
        raise DecryptionError("The encryption key must be 256 bits.")
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt_audio(
    audio: bytes,
    hex_key: str,
    on_progress: Optional[Callable[[int], None]] = None,
) -> tuple:
    """Returns `(iv_hex, ciphertext_b64)`. `on_progress` receives 0..100."""
    iv = secrets.token_bytes(IV_BYTES)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    encryptor = _cipher(hex_key, iv).encryptor()

    parts = []
    total = len(audio) or 1
    for offset in range(0, len(audio), ENCRYPT_BLOCK_BYTES):
        block = audio[offset:offset + ENCRYPT_BLOCK_BYTES]
        parts.append(encryptor.update(padder.update(block)))
        if on_progress:
            on_progress(min(100, (offset + len(block)) * 100 // total))
    parts.append(encryptor.update(padder.finalize()) + encryptor.finalize())
    if on_progress:
        on_progress(100)

    return iv.hex(), base64.b64encode(b"".join(parts)).decode("ascii")


def decrypt_audio(data_b64: str, iv_hex: str, hex_key: str) -> bytes:
    try:
        ciphertext = base64.b64decode(data_b64, validate=True)
        iv = bytes.fromhex(iv_hex)
        decryptor = _cipher(hex_key, iv).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except (ValueError, binascii.Error) as e:
        raise DecryptionError(
            "Failed to decrypt audio. The file may be corrupted or the key is invalid."
        ) from e


def create_encrypted_package(
    audio: bytes,
    hex_key: str,
    lesson_id: int,
    on_progress: Optional[Callable[[int], None]] = None,
) -> EncryptedAudioPackage:
    iv, data = encrypt_audio(audio, hex_key, on_progress)
    return EncryptedAudioPackage(
        iv=iv,
        data=data,
        metadata=PackageMetadata(
            lesson_id=lesson_id,
            original_size=len(audio),
            encrypted_at=datetime.now(timezone.utc),
            checksum=checksum(data),
        ),
    )


def decrypt_package(package: EncryptedAudioPackage, hex_key: str) -> bytes:
    if package.algorithm != EncryptionAlgorithmEnum.AES_256_CBC.value:
        raise DecryptionError(f"Unsupported package algorithm {package.algorithm}.")
    if checksum(package.data) != package.metadata.checksum:
        raise DecryptionError("Audio file integrity check failed. File may be corrupted.")
    return decrypt_audio(package.data, package.iv, hex_key)
