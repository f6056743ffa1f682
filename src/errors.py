from dataclasses import dataclass, field
from typing import Any


class StepTimeout(TimeoutError):
    """A wait condition did not hold within its bound."""

    def __init__(self, description: str, timeout_ms: int, elapsed_ms: float | None = None):
        self.description = description
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms
        super().__init__(f"Timed out after {timeout_ms}ms waiting for {description}")


@dataclass
class DriverError(Exception):
    """Raised when the browser driver itself fails (crashed session, detached element, bad navigation)."""

    action: str
    payload: dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.action} failed ({self.message}) with payload={self.payload}"
