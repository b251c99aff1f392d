"""Content fingerprints for clip entries and captured image files."""

import hashlib
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

CONTENT_HASH_SEPARATOR = "|"

# Digest size of the in-process image key; it is never persisted
FILE_KEY_DIGEST_SIZE = 16


def sha256_hex(data: bytes) -> str:
    """
    Calculate the SHA256 digest of data

    Returns:
        Uppercase hex digest (64 characters)
    """
    return hashlib.sha256(data).hexdigest().upper()


def content_hash(text: str = "", image_path: str = "", timestamp: str = "") -> str:
    """
    Calculate the unique key of a clip entry

    The key covers ``text|image_path|timestamp`` so the same text copied
    twice within one second collides, while the same text copied later
    does not.
    """
    hash_input = CONTENT_HASH_SEPARATOR.join((text or "", image_path or "", timestamp or ""))
    return sha256_hex(hash_input.encode("utf-8"))


def file_content_key(path: Union[str, Path]) -> str:
    """
    Fast key over the full content of a file

    Used only to compare consecutive clipboard image captures within one
    run. Returns an empty string if the file cannot be read.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.debug(f"Cannot read {path} for content key: {e}")
        return ""
    return hashlib.blake2b(data, digest_size=FILE_KEY_DIGEST_SIZE).hexdigest()
