"""
Atomic file replacement.

Content is written to a temporary file in the target's directory and
moved over the target with os.replace, so readers see either the old
file or the new one, never a torn write.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

import structlog


logger = structlog.get_logger(__name__)


def atomic_write_text(
    target: Union[str, Path],
    content: str,
    fsync: bool = True,
) -> None:
    """
    Atomically replace `target` with `content` (UTF-8).

    Creates missing parent directories. On failure the temporary file is
    removed and an OSError propagates; the previous target is untouched.
    """
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="wb",
        prefix=target.name + "-",
        suffix=".tmp",
        dir=target.parent,
        delete=False,
    ) as tf:
        temp_name = tf.name
        try:
            tf.write(content.encode("utf-8"))
            tf.flush()
            if fsync:
                os.fsync(tf.fileno())
        except OSError:
            tf.close()
            os.unlink(temp_name)
            raise

    try:
        os.replace(temp_name, target)
    except OSError:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise

    if fsync and hasattr(os, "O_DIRECTORY"):
        # Persist the directory entry too; not supported everywhere.
        try:
            dir_fd = os.open(target.parent, os.O_RDONLY | os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            logger.warning("directory_fsync_failed", path=str(target.parent), error=str(e))

    logger.debug("atomic_write_complete", path=str(target))
