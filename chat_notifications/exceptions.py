from typing import Optional


class DispatchError(Exception):
    """Base class for failures that abort a notification dispatch."""

    def __init__(self, message: str, chat_id: Optional[str] = None, message_id: Optional[str] = None):
        super().__init__(message)
        self.chat_id = chat_id
        self.message_id = message_id


class MalformedMessage(DispatchError):
    """The created message document lacks the fields needed to notify anyone."""


class MissingChatRecord(DispatchError):
    """The chat a message belongs to does not exist."""


class MissingSenderRecord(DispatchError):
    """The user who sent a message does not exist."""


class MalformedChatRecord(DispatchError):
    """The chat document exists but its fields cannot be read."""
