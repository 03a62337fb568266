from .dispatcher import NotificationDispatcher
from .exceptions import DispatchError, MalformedChatRecord, MalformedMessage, MissingChatRecord, MissingSenderRecord
from .schemas import Chat, DispatchResult, Message, NotificationPayload, User

__all__ = [
    "NotificationDispatcher",
    "DispatchError",
    "MalformedChatRecord",
    "MalformedMessage",
    "MissingChatRecord",
    "MissingSenderRecord",
    "Chat",
    "DispatchResult",
    "Message",
    "NotificationPayload",
    "User",
]
