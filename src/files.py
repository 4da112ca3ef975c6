"""File storage primitives.

Writes replace the target atomically (temp file + rename) so a reader
never sees a partially written networks.json or docker-compose.yml.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class FileStore:
    """Text blob store backed by the local filesystem."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def read(self, path: Path) -> str:
        with open(path, encoding='utf-8') as f:
            return f.read()

    def write(self, path: Path, text: str) -> None:
        """Write text to path, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f'.{path.name}-', dir=path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug(f"Wrote {path}")

    def copy_tree(self, src: Path, dest: Path) -> None:
        """Copy a directory tree, merging into dest if it already exists."""
        shutil.copytree(src, dest, dirs_exist_ok=True)
        logger.debug(f"Copied {src} -> {dest}")

    def ensure_dir(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
