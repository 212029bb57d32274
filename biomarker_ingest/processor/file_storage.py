import re
import uuid
from pathlib import Path

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(file_name: str, max_length: int = 100) -> str:
    """Reduce a client-supplied file name to a filesystem-safe form."""
    name = _UNSAFE_CHARS.sub("_", Path(file_name).name).strip("._")
    if len(name) > max_length:
        path = Path(name)
        name = path.stem[: max_length - len(path.suffix)] + path.suffix
    return name or "document"


class FileStorage:
    """Stores uploaded files on local disk under ``{root}/{owner_id}/``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def save(self, owner_id: int, file_name: str, data: bytes) -> str:
        """Write the file and return its storage path relative to the root."""
        relative = Path(str(owner_id)) / f"{uuid.uuid4().hex}_{safe_file_name(file_name)}"
        target = self._root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return relative.as_posix()

    def load(self, storage_path: str) -> bytes:
        """Read stored bytes.

        Raises:
            FileNotFoundError: if nothing is stored at the path.
            ValueError: if the path escapes the storage root.
        """
        path = self._resolve(storage_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def delete(self, storage_path: str) -> None:
        self._resolve(storage_path).unlink(missing_ok=True)

    def _resolve(self, storage_path: str) -> Path:
        root = self._root.resolve()
        path = (root / storage_path).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"Storage path escapes root: {storage_path}")
        return path
