"""Host implementations that keep state locally."""

from .memory import InMemoryHost, Notification

__all__ = ["InMemoryHost", "Notification"]
