import logging
import sys
from typing import Callable, Iterable, Optional, TextIO, TypeVar

from .errors import MeshBridgeError

T = TypeVar("T")

WIDTH = 73
INDENT = "    "

logger = logging.getLogger(__name__)


class Transcript:
    """Human-readable progress output on stdout.

    Phase banners, one padded line per step ending in SUCCESS or FAILED, and a
    final error block when a run halts. Not meant to be machine-parsed.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def banner(self, text: str) -> None:
        logger.info(text)
        self._write(f"{text}\n")

    def found(self, label: str, items: Iterable[str]) -> None:
        items = list(items)
        self._write(f"{label}: {' '.join(items) if items else 'NONE'}\n")

    def counted(self, label: str, count: int) -> None:
        self._write(f"{label}: {f'Found {count}' if count else 'NONE'}\n")

    def note(self, text: str, depth: int = 1) -> None:
        self._write(f"{INDENT * depth}{text}\n")

    def step(self, label: str, ok: bool, depth: int = 1) -> bool:
        line = f"{INDENT * depth}{label} ... "
        self._write(f"{line:<{WIDTH}}{'SUCCESS' if ok else 'FAILED'}\n")
        if not ok:
            logger.warning("%s ... FAILED", label)
        return ok

    def check(self, label: str, check: Callable[[], T], depth: int = 1) -> T:
        """Run a raising validator and report it as one step."""
        try:
            result = check()
        except MeshBridgeError:
            self.step(label, False, depth)
            raise
        self.step(label, True, depth)
        return result

    def halted(self, message: str) -> None:
        self._write(f"\n{INDENT}ERROR:  {message} ... processing halted\n\n")
