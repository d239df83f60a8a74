"""The sing-box config file on disk, guarded by a read/write lock."""
import json
import os
import tempfile
from typing import Any

from zenagent.rwlock import RWLock


class ConfigStore:
    def __init__(self, path: str):
        self.path = path
        self.lock = RWLock()

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def read(self) -> bytes | None:
        """Raw file contents, or None when nothing has been written yet."""
        with self.lock.read():
            try:
                with open(self.path, "rb") as f:
                    return f.read()
            except FileNotFoundError:
                return None

    def write(self, document: dict[str, Any]) -> None:
        """Pretty-print document and atomically replace the config file."""
        data = json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False).encode("utf-8")
        dirpath = os.path.dirname(self.path)
        with self.lock.write():
            if dirpath:
                os.makedirs(dirpath, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=dirpath or None, prefix=".config_", suffix=".json")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.chmod(tmp, 0o644)
                os.replace(tmp, self.path)
            except Exception:
                os.unlink(tmp)
                raise
