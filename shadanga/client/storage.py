from pathlib import Path
from typing import Any, Optional
import errno
import json
import logging
import os

from shadanga.client.encryption import EncryptedAudioPackage
from shadanga.client.errors import StorageError

logger = logging.getLogger(__name__)

PREFERENCES_FILE = "preferences.json"
KEYS_DIR = "keys"
AUDIO_DIR = "audio"


def storage_error(e: OSError, action: str) -> StorageError:
    if e.errno == errno.ENOSPC:
        return StorageError("Device storage is full. Please free up some space and try again.")
    return StorageError(f"Failed to {action}. Please check your device storage.")


class LocalStore:
    """
    On-device storage for the learner client.

    Layout under `root`:
      preferences.json          small JSON values (device id, downloads index)
      keys/<lesson_id>.key      per-lesson keys, owner read/write only
      audio/<lesson_id>_meta.json
      audio/<lesson_id>_data.b64        or, above the chunk threshold,
      audio/<lesson_id>_data_<n>.b64 + audio/<lesson_id>_chunks.json
    """

    def __init__(self, root: Path, chunk_threshold: int, chunk_size: int):
        self.root = Path(root)
        self.chunk_threshold = chunk_threshold
        # base64 text must be split on 4-character boundaries
        self.chunk_size = max(4, chunk_size - chunk_size % 4)
        (self.root / KEYS_DIR).mkdir(parents=True, exist_ok=True)
        (self.root / AUDIO_DIR).mkdir(parents=True, exist_ok=True)
        os.chmod(self.root / KEYS_DIR, 0o700)

    # Preferences

    def _read_preferences(self) -> dict:
        path = self.root / PREFERENCES_FILE
        if not path.exists():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def _write_preferences(self, values: dict) -> None:
        path = self.root / PREFERENCES_FILE
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(values), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise storage_error(e, "save preferences") from e

    def get_preference(self, key: str, default: Any = None) -> Any:
        return self._read_preferences().get(key, default)

    def set_preference(self, key: str, value: Any) -> None:
        values = self._read_preferences()
        values[key] = value
        self._write_preferences(values)

    def remove_preference(self, key: str) -> None:
        values = self._read_preferences()
        if values.pop(key, None) is not None:
            self._write_preferences(values)

    # Secure key store

    def _key_path(self, lesson_id: int) -> Path:
        return self.root / KEYS_DIR / f"{lesson_id}.key"

    def save_key(self, lesson_id: int, hex_key: str) -> None:
        path = self._key_path(lesson_id)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(hex_key)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise storage_error(e, "save the download key") from e

    def get_key(self, lesson_id: int) -> Optional[str]:
        path = self._key_path(lesson_id)
        if not path.exists():
            return None
        return path.read_text(encoding="ascii").strip()

    def remove_key(self, lesson_id: int) -> None:
        self._key_path(lesson_id).unlink(missing_ok=True)

    # Encrypted audio

    def _audio_path(self, name: str) -> Path:
        return self.root / AUDIO_DIR / name

    def save_package(self, lesson_id: int, package: EncryptedAudioPackage) -> None:
        self.delete_package(lesson_id)
        try:
            self._audio_path(f"{lesson_id}_meta.json").write_text(
                package.model_dump_json(exclude={"data"}), encoding="utf-8"
            )
            data = package.data
            if len(data) > self.chunk_threshold:
                chunks = [data[i:i + self.chunk_size] for i in range(0, len(data), self.chunk_size)]
                for i, chunk in enumerate(chunks):
                    self._audio_path(f"{lesson_id}_data_{i}.b64").write_text(chunk, encoding="ascii")
                self._audio_path(f"{lesson_id}_chunks.json").write_text(
                    json.dumps({"num_chunks": len(chunks)}), encoding="utf-8"
                )
                logger.info(f"Lesson {lesson_id} audio stored in {len(chunks)} chunks")
            else:
                self._audio_path(f"{lesson_id}_data.b64").write_text(data, encoding="ascii")
        except OSError as e:
            self.delete_package(lesson_id)
            raise storage_error(e, "save audio file") from e

    def load_package(self, lesson_id: int) -> Optional[EncryptedAudioPackage]:
        meta_path = self._audio_path(f"{lesson_id}_meta.json")
        if not meta_path.exists():
            return None
        meta = json.loads(meta_path.read_text(encoding="utf-8"))

        chunks_path = self._audio_path(f"{lesson_id}_chunks.json")
        if chunks_path.exists():
            num_chunks = json.loads(chunks_path.read_text(encoding="utf-8"))["num_chunks"]
            data = "".join(
                self._audio_path(f"{lesson_id}_data_{i}.b64").read_text(encoding="ascii")
                for i in range(num_chunks)
            )
        else:
            data_path = self._audio_path(f"{lesson_id}_data.b64")
            if not data_path.exists():
                return None
            data = data_path.read_text(encoding="ascii")

        return EncryptedAudioPackage(**meta, data=data)

    def has_package(self, lesson_id: int) -> bool:
        return self._audio_path(f"{lesson_id}_meta.json").exists()

    def delete_package(self, lesson_id: int) -> None:
        for path in (self.root / AUDIO_DIR).glob(f"{lesson_id}_*"):
            path.unlink(missing_ok=True)
