"""
Transcript writer shared by the executor and its collaborators.
"""
import logging
import threading
from typing import TextIO

logger = logging.getLogger(__name__)


class OutputWriter:
    """
    Append-only, line-oriented transcript.

    Every line is written and flushed before the call returns, so readers see
    lines in exactly the order they were produced. Each line is also logged at
    INFO as it is written.
    """

    def __init__(self, stream: TextIO, name: str = "deploy"):
        self.stream = stream
        self.name = name
        self._lock = threading.Lock()

    def puts(self, line: str) -> None:
        with self._lock:
            self.stream.write(f"{line}\n")
            self.stream.flush()
        logger.info(f"[{self.name}] {line}")
