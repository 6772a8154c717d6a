import hashlib
import logging
from collections.abc import Iterable

# Library logger shared by every pagewindow module
logger = logging.getLogger("pagewindow")

# Applications opt in to output by configuring handlers themselves.
logger.addHandler(logging.NullHandler())


def redact_id(item_id: object) -> str:
    """
    Hashes an item id for log output.
    Ids of chat entities often embed user handles, so only a short digest
    is emitted. The digest is stable and can be used to correlate records.
    """
    return hashlib.sha256(str(item_id).encode("utf-8")).hexdigest()[:8]


def redact_ids(item_ids: Iterable[object], limit: int = 5) -> list[str]:
    """Redacts the first ``limit`` ids of a sequence."""
    redacted = []
    for index, item_id in enumerate(item_ids):
        if index >= limit:
            break
        redacted.append(redact_id(item_id))
    return redacted
