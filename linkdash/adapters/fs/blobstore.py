import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class FileSystemBlobStore:
    """
    Stores each blob as a file under base_path.

    Keys are relative paths ("global.json", "users/alice.json").
    Reads return None for missing or unreadable files; writes return False
    instead of raising so callers can keep the unsaved state.
    """

    def __init__(self, base_path: str | Path, *, create_dirs: bool = True):
        self.base_path = Path(base_path).resolve()
        if create_dirs and not self.base_path.exists():
            try:
                os.makedirs(self.base_path, exist_ok=True)
            except OSError as e:
                logger.warning("Could not create storage dir %s: %s", self.base_path, e)

    def _safe_path(self, key: str) -> Path:
        # Prevent traversal
        target = (self.base_path / key).resolve()
        if not target.is_relative_to(self.base_path):
            raise ValueError(f"Path traversal attempt detected: {key}")
        return target

    def read(self, key: str) -> bytes | None:
        try:
            target = self._safe_path(key)
        except ValueError as e:
            logger.warning("Rejected read of %s: %s", key, e)
            return None
        if not target.exists():
            return None
        try:
            with open(target, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning("Read failed for %s: %s", key, e)
            return None

    def write(self, key: str, data: bytes) -> bool:
        try:
            target = self._safe_path(key)
            target.parent.mkdir(parents=True, exist_ok=True)
            # Replace atomically so readers never see a half-written document
            tmp = target.with_name(f".{target.name}.tmp")
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, target)
        except (OSError, ValueError) as e:
            logger.warning("Write failed for %s: %s", key, e)
            return False
        logger.debug("Wrote %d bytes to %s", len(data), key)
        return True

    def exists(self, key: str) -> bool:
        try:
            return self._safe_path(key).exists()
        except ValueError:
            return False
