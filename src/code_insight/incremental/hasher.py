"""Content digests for staleness detection.

Digests cover the exact bytes of a file, with no whitespace or encoding
normalisation. Inputs are trusted local files, so the hash only guards
integrity and never needs to resist an attacker.
"""

import hashlib
from pathlib import Path
from typing import Union

from ..exceptions import FileAccessError

DIGEST_ALGORITHM = "sha256"
DIGEST_LENGTH = 64  # hex characters

_CHUNK_SIZE = 64 * 1024


def digest_bytes(data: bytes) -> str:
    """Hex digest of ``data``."""
    return hashlib.new(DIGEST_ALGORITHM, data).hexdigest()


def digest_file(filepath: Union[str, Path]) -> str:
    """
    Hex digest of a file's contents, streamed in chunks.

    Args:
        filepath: File to hash

    Returns:
        Hex digest string of DIGEST_LENGTH characters

    Raises:
        FileAccessError: If the file cannot be opened or read
    """
    hasher = hashlib.new(DIGEST_ALGORITHM)
    try:
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                hasher.update(chunk)
    except OSError as e:
        raise FileAccessError(Path(filepath), e.strerror or str(e)) from e
    return hasher.hexdigest()

