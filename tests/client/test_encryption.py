import pytest

from shadanga.client.encryption import (
    create_encrypted_package,
    decrypt_audio,
    decrypt_package,
    generate_key,
    hash_key,
)
from shadanga.client.errors import DecryptionError

AUDIO = b"ID3" + bytes(range(256)) * 40


def test_key_and_hash_shapes():
    key = generate_key()
    assert len(key) == 64
    assert len(hash_key(key)) == 64
    assert hash_key(key) != key


def test_package_decrypts_with_its_key():
    key = generate_key()
    package = create_encrypted_package(AUDIO, key, lesson_id=7)
    assert package.metadata.original_size == len(AUDIO)
    assert package.metadata.lesson_id == 7
    assert decrypt_package(package, key) == AUDIO


def test_encrypt_reports_progress_to_completion():
    seen = []
    create_encrypted_package(AUDIO, generate_key(), lesson_id=1, on_progress=seen.append)
    assert seen[-1] == 100
    assert seen == sorted(seen)


def test_tampered_data_fails_integrity_check():
    key = generate_key()
    package = create_encrypted_package(AUDIO, key, lesson_id=1)
    package.data = "A" + package.data[1:] if package.data[0] != "A" else "B" + package.data[1:]
    with pytest.raises(DecryptionError, match="integrity"):
        decrypt_package(package, key)


def test_wrong_key_is_rejected():
    package = create_encrypted_package(AUDIO, generate_key(), lesson_id=1)
    with pytest.raises(DecryptionError):
        decrypt_audio(package.data, package.iv, "ab" * 16)
    with pytest.raises(DecryptionError):
        decrypt_audio(package.data, package.iv, "not hex")
