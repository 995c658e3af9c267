"""Content hashing for the import dedup gate."""

import hashlib
from typing import Union


def compute_content_hash(payload: Union[bytes, str]) -> str:
    """Return the upper-case SHA-256 hex digest of a document's exact bytes.

    Text payloads are UTF-8 encoded first, so the same file gives the same
    hash whether it was read as text or as bytes.
    """
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha256(payload).hexdigest().upper()
