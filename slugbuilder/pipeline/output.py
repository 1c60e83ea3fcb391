"""Line-oriented build log shared by every stage of a build."""

import threading
from collections.abc import Callable

OutputSink = Callable[[str], None]

TITLE_PREFIX = "-----> "
TEXT_PREFIX = "       "


class BuildLog:
    """Accumulates build output and forwards each line to an optional sink.

    Lines are stored without their trailing newline. Subprocess readers write
    from their own threads, so appends are serialized.
    """

    def __init__(self, sink: OutputSink | None = None) -> None:
        self.sink = sink
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def write(self, line: str) -> None:
        """Record a raw output line."""
        line = line.rstrip("\r\n")
        with self._lock:
            self._lines.append(line)
            if self.sink is not None:
                self.sink(line)

    def title(self, text: str) -> None:
        """Record a stage heading."""
        self.write(f"{TITLE_PREFIX}{text}")

    def text(self, text: str) -> None:
        """Record an indented detail line."""
        self.write(f"{TEXT_PREFIX}{text}")

    @property
    def lines(self) -> list[str]:
        """Return a copy of the recorded lines."""
        with self._lock:
            return list(self._lines)

    @property
    def output(self) -> str:
        """Return the whole log as text."""
        lines = self.lines
        return "\n".join(lines) + "\n" if lines else ""
