"""
Atomic file writing for exported reports.

Content goes to a temporary file in the target directory and is moved into
place with ``os.replace``, so a report on disk is always either the previous
version or the complete new one.
"""

import os
import shutil
import tempfile
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def atomic_write_bytes(target_path: Path, content: bytes) -> None:
    """
    Atomically write ``content`` to ``target_path``.

    Raises:
        OSError: If the file cannot be written or moved into place
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file_path = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="wb", dir=target_path.parent, prefix=f".{target_path.name}.", suffix=".tmp", delete=False
        ) as temp_file:
            temp_file_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        try:
            os.replace(str(temp_file_path), str(target_path))
        except OSError as rename_error:
            logger.warning("Atomic rename failed, falling back to shutil.move", error=str(rename_error))
            shutil.move(str(temp_file_path), str(target_path))
        logger.debug("Atomic write completed", target=str(target_path), size=len(content))

    except (OSError, shutil.Error) as e:
        raise OSError(f"Failed to atomically write {target_path}: {e}") from e

    finally:
        if temp_file_path and temp_file_path.exists():
            try:
                temp_file_path.unlink()
            except OSError:
                pass

