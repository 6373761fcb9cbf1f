"""CRLF framing of the raw probe byte stream."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import FramingOverrun
from .models import DELIMITER

logger = logging.getLogger(__name__)


class FrameDecoder:
    """Turn arbitrarily split byte chunks into complete ``CR LF`` lines.

    The decoder is owned by a single ingestion thread and is not locked.
    The very first line it ever resolves is discarded because the port may
    have been opened in the middle of a transmission.
    """

    def __init__(self, max_buffer_bytes: Optional[int] = None) -> None:
        if max_buffer_bytes is not None and max_buffer_bytes < len(DELIMITER):
            raise ValueError("max_buffer_bytes must leave room for a delimiter")
        self._max_buffer_bytes = max_buffer_bytes
        self._buffer = bytearray()
        self._heads = True

    @property
    def heads(self) -> bool:
        """True until the first (possibly truncated) line has been dropped."""
        return self._heads

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[bytes]:
        """Append ``chunk`` and return every line completed by it, in order.

        Raises :class:`FramingOverrun` only when the chunk completes no line
        and the buffer has grown past the cap. A remainder left behind after
        complete lines is checked by :meth:`check_overrun`, so those lines
        are never lost to the error.
        """
        self._buffer += chunk
        # Only the rightmost delimiter matters: everything before it is
        # drained in one pass, whatever the number of lines in the chunk.
        split_at = self._buffer.rfind(DELIMITER)
        if split_at == -1:
            self.check_overrun()
            return []

        complete = bytes(self._buffer[:split_at])
        del self._buffer[: split_at + len(DELIMITER)]

        lines = complete.split(DELIMITER)
        if self._heads:
            self._heads = False
            logger.debug("Discarding leading partial line %r", lines[0])
            lines = lines[1:]
        return lines

    def reset(self) -> None:
        self._buffer.clear()
        self._heads = True

    def check_overrun(self) -> None:
        """Raise :class:`FramingOverrun` if the unresolved tail exceeds the cap."""
        limit = self._max_buffer_bytes
        if limit is not None and len(self._buffer) > limit:
            pending = len(self._buffer)
            # Drop the runaway bytes so the decoder holds no stale state.
            self._buffer.clear()
            raise FramingOverrun(pending, limit)
