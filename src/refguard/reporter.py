"""Message sink for the pushing client.

git relays everything the update hook writes to stderr back to the pusher,
prefixed with "remote:".
"""

from __future__ import annotations

import sys
from typing import TextIO


class Reporter:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement of sys.stderr is honoured
        return self._stream or sys.stderr

    def report(self, message: str, hint: str | None = None) -> None:
        print(f"*** {message}", file=self.stream)
        if hint:
            for line in hint.splitlines():
                print(f"hint: {line}", file=self.stream)
        self.stream.flush()
