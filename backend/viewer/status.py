from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class StatusReporter:
    """
    Single user-facing status line. Keeps a short history for the API/tests.
    """

    message: str = ""
    history: list[str] = field(default_factory=list)
    max_history: int = 50

    def set(self, text: str | None) -> None:
        self.message = text or ""
        self.history.append(self.message)
        if len(self.history) > self.max_history:
            del self.history[: len(self.history) - self.max_history]
