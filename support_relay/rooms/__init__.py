from .connection import RelayConnection
from .room_broadcaster import RoomBroadcaster

__all__ = ["RelayConnection", "RoomBroadcaster"]
