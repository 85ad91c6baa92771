from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

from causal_lab.errors import StorageError

SAVE_ATTEMPTS = 5


@dataclass(frozen=True)
class LocalFileStorage:
    """Uploaded files on local disk under ``<base_dir>/uploads``.

    Locators are ``<base_dir>/uploads/<time_ns>[-<n>]_<file name>`` and are
    stored verbatim in ``datasets.file_path``.
    """

    base_dir: Path

    def uploads_dir(self) -> Path:
        return self.base_dir / "uploads"

    def locator_for(self, file_name: str, attempt: int = 0) -> Path:
        # keep only the base name so "../x.csv" cannot escape the uploads dir
        safe_name = Path(file_name.replace("\\", "/")).name or "upload.csv"
        prefix = f"{time.time_ns()}-{attempt}" if attempt else str(time.time_ns())
        return self.uploads_dir() / f"{prefix}_{safe_name}"

    def save(self, file_name: str, data: bytes) -> str:
        try:
            self.uploads_dir().mkdir(parents=True, exist_ok=True)
            for attempt in range(SAVE_ATTEMPTS):
                path = self.locator_for(file_name, attempt)
                try:
                    with path.open("xb") as f:
                        f.write(data)
                except FileExistsError:
                    continue
                return str(path)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to store upload {file_name!r}: {e}") from e
        raise StorageError(f"Failed to store upload {file_name!r}: no free locator")

    def read(self, locator: str) -> bytes:
        try:
            return Path(locator).read_bytes()
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read stored file {locator!r}: {e}") from e

    def delete(self, locator: str) -> None:
        try:
            Path(locator).unlink()
        except FileNotFoundError:
            pass
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to delete stored file {locator!r}: {e}") from e
