from abc import ABC, abstractmethod
from typing import Any


class RelayConnection(ABC):
    """A live client connection as seen by the relay core.

    The transport owns the connection; the core only needs a stable id and a
    way to push one event to the client.
    """

    def __init__(self, connection_id: str):
        self.connection_id = connection_id

    @abstractmethod
    async def send(self, event: str, payload: Any) -> None:
        """Deliver one event to the client."""
        raise NotImplementedError("Subclasses must implement send")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_id!r})"
