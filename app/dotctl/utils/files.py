"""Owner-only file and directory helpers.

Machine-local credential files must never be readable by other users,
not even for the short window between creation and the first write.
Files are therefore written to a temporary file whose mode is fixed
on the open descriptor before any content goes in, then renamed over
the destination.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

logger = logging.getLogger(__name__)

PRIVATE_FILE_MODE = 0o600
PRIVATE_DIR_MODE = 0o700


def ensure_private_dir(path: Path, mode: int = PRIVATE_DIR_MODE) -> Path:
    """Create a directory (and parents) and restrict it to the owner.

    The mode is applied even when the directory already exists, so a
    directory created earlier with a permissive umask is tightened.

    Args:
        path: Directory to create.
        mode: Permission bits for the directory itself.

    Returns:
        The directory path.

    Raises:
        OSError: If the directory cannot be created or chmod fails.
    """
    path.mkdir(parents=True, exist_ok=True)
    os.chmod(path, mode)
    return path


def write_private_file(path: Path, content: str, mode: int = PRIVATE_FILE_MODE) -> Path:
    """Atomically write a file that only its owner may read.

    An existing symlink at ``path`` is replaced by a regular file rather
    than written through.

    Args:
        path: Destination file.
        content: Text content to write.
        mode: Permission bits for the written file.

    Returns:
        The destination path.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            os.fchmod(f.fileno(), mode)
            f.write(content)
        os.replace(str(tmp_path), str(path))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise

    logger.debug("Wrote %s (mode %o)", path, mode)
    return path
