"""Re-bindable handler cell shared between a controller and its caller."""

from __future__ import annotations

from typing import Callable, Optional

Handler = Optional[Callable[[], None]]


class CallbackRef:
    """Holds the latest handler; calling the ref calls whatever is bound now.

    A controller captures the ref once, and the caller re-binds it whenever
    it has a new handler, so in-flight actions always reach the current one.
    """

    def __init__(self, handler: Handler = None) -> None:
        self.current: Handler = handler

    def bind(self, handler: Handler) -> None:
        self.current = handler

    def __call__(self) -> None:
        if self.current is not None:
            self.current()
