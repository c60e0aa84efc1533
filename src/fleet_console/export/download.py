"""Download surfaces: where finished exports are persisted."""

import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from ..config.logging_config import get_logger
from ..config.settings import config

logger = get_logger("download")


class DownloadSurface(Protocol):
    """Persists bytes as a user-visible download."""

    def save(self, data: bytes, mime_type: str, filename: str) -> Optional[Path]:
        ...


class FileDownloadSurface:
    """Writes downloads into a local directory.

    The file is written under a temporary name in the same directory and
    renamed into place, so a reader never sees a partial export.
    """

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir) if output_dir else config.export.exports_path
        self.last_path: Optional[Path] = None

    def save(self, data: bytes, mime_type: str, filename: str) -> Path:
        """
        Save a download.

        Args:
            data: File content.
            mime_type: Content type (recorded in the log only).
            filename: Target file name, without directories.

        Returns:
            Path of the written file.
        """
        if Path(filename).name != filename:
            raise ValueError(f"Download filename must not contain directories: {filename!r}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / filename

        fd, tmp_name = tempfile.mkstemp(dir=self.output_dir, prefix=f".{filename}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.last_path = target
        logger.info(f"Saved {len(data):,} bytes ({mime_type}) to {target}")
        return target
