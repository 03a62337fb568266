from typing import Dict, List, Optional

from pydantic import BaseModel, Field

ATTACHMENT_BODY = "Sent an attachment"
DEFAULT_BODY = "New message"
NOTIFICATION_TYPE_CHAT = "chat"


class Message(BaseModel):
    """A chat message as stored under chats/{chatId}/messages/{messageId}"""
    senderId: str
    content: Optional[str] = None
    attachmentUrl: Optional[str] = None

    def notification_body(self) -> str:
        if self.content:
            return self.content
        if self.attachmentUrl:
            return ATTACHMENT_BODY
        return DEFAULT_BODY


class Chat(BaseModel):
    """A chat document as stored under chats/{chatId}"""
    participants: List[str] = Field(default_factory=list)
    isGroup: bool = False
    groupName: Optional[str] = None

    def recipients_for(self, sender_id: str) -> List[str]:
        """
        Participants other than the sender, each listed once.

        Args:
            sender_id: The user who wrote the message

        Returns:
            List of recipient user IDs (order carries no meaning)
        """
        return [p for p in dict.fromkeys(self.participants) if p != sender_id]


class User(BaseModel):
    """A user profile as stored under users/{userId}"""
    name: Optional[str] = None
    fcmToken: Optional[str] = None


class SenderProfile(BaseModel):
    """The part of a sender's user profile a notification needs"""
    name: Optional[str] = None


class NotificationPayload(BaseModel):
    """Push payload sent to every recipient device of one message"""
    title: Optional[str] = None
    body: str
    data: Dict[str, str]

    @classmethod
    def for_message(cls, chat_id: str, chat: Chat, message: Message,
                    sender_name: Optional[str]) -> "NotificationPayload":
        title = chat.groupName if chat.isGroup else sender_name
        return cls(
            title=title,
            body=message.notification_body(),
            data={'chatId': chat_id, 'type': NOTIFICATION_TYPE_CHAT}
        )


class DispatchResult(BaseModel):
    """Outcome of handling one created message"""
    chatId: str
    messageId: str
    recipientCount: int = 0
    tokenCount: int = 0
    successCount: int = 0
    failureCount: int = 0
    staleTokenCount: int = 0
