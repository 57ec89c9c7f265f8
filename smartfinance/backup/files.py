"""
Backup Files

Writing a full backup to disk ("Backup" button, "Backup & Log Out") and
reading one back for restore. The document format is the codec's; this
module only deals with names, paths and bytes.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional, Union

from smartfinance.backup.codec import (
    DecodeFailure,
    DecodeFailureKind,
    DecodeResult,
    decode_json,
)
from smartfinance.models.backup import BackupData
from smartfinance.services.local.atomic import atomic_write_text


BACKUP_FILE_PREFIX = "HHS_Finance_Backup_"


def backup_filename(today: Optional[date] = None) -> str:
    """File name for a backup taken on `today`, e.g. HHS_Finance_Backup_2024-01-05.json"""
    today = today or date.today()
    return f"{BACKUP_FILE_PREFIX}{today.isoformat()}.json"


def write_backup_file(
    backup: BackupData,
    directory: Union[str, Path],
    filename: Optional[str] = None,
) -> Path:
    """
    Write a backup as pretty-printed JSON.

    A second backup on the same day overwrites the first.

    Args:
        backup: The envelope to write
        directory: Target directory (created if missing)
        filename: Override the dated default name

    Returns:
        Path of the written file

    Raises:
        OSError: If the file cannot be written
    """
    name = filename or backup_filename(backup.metadata.timestamp.date())
    path = Path(directory) / name
    text = json.dumps(backup.to_document(), indent=2, ensure_ascii=False)
    atomic_write_text(path, text)
    return path


def read_backup_file(path: Union[str, Path]) -> DecodeResult:
    """
    Read and decode a backup file.

    Never raises: an unreadable file is reported as a DecodeFailure.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        return DecodeFailure(
            kind=DecodeFailureKind.UNREADABLE,
            reason=f"Could not read backup file {path}: {e}",
        )
    return decode_json(raw)
