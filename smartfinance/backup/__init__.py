"""Backup encoding, decoding and files."""

from smartfinance.backup.codec import (
    DecodeFailure,
    DecodeFailureKind,
    DecodeResult,
    DecodeSuccess,
    EnvelopeKind,
    decode,
    decode_json,
    describe,
    encode,
)
from smartfinance.backup.files import (
    backup_filename,
    read_backup_file,
    write_backup_file,
)

__all__ = [
    "DecodeFailure",
    "DecodeFailureKind",
    "DecodeResult",
    "DecodeSuccess",
    "EnvelopeKind",
    "decode",
    "decode_json",
    "describe",
    "encode",
    "backup_filename",
    "read_backup_file",
    "write_backup_file",
]
