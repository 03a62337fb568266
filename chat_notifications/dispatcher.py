import asyncio
import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from .exceptions import MalformedChatRecord, MalformedMessage, MissingChatRecord, MissingSenderRecord
from .firebase_client import is_stale_token_error
from .schemas import Chat, DispatchResult, Message, NotificationPayload, SenderProfile, User

logger = logging.getLogger(__name__)

CHATS_COLLECTION = 'chats'
USERS_COLLECTION = 'users'


def token_prefix(token: str) -> str:
    return token[:8]


class NotificationDispatcher:
    """Sends a push notification to every recipient device of a new chat message."""

    def __init__(self, firebase_client):
        """
        Initialize the dispatcher.

        Args:
            firebase_client: Client exposing get_document() and send_notification()
        """
        self.firebase = firebase_client

    async def dispatch(self, chat_id: str, message_id: str,
                       message_data: Optional[Mapping[str, Any]]) -> DispatchResult:
        """
        Notify the recipients of a newly created message.

        Args:
            chat_id: ID of the chat the message was written to
            message_id: ID of the created message document
            message_data: Fields of the created message document

        Returns:
            DispatchResult describing what was sent

        Raises:
            MalformedMessage: If the message has no sender
            MissingChatRecord: If the chat document does not exist
            MalformedChatRecord: If the chat document has unreadable fields
            MissingSenderRecord: If the sender's user document does not exist
        """
        result = DispatchResult(chatId=chat_id, messageId=message_id)

        message = self._parse_message(chat_id, message_id, message_data)

        chat_data = await self.firebase.get_document(CHATS_COLLECTION, chat_id)
        if chat_data is None:
            raise MissingChatRecord(f"Chat {chat_id} not found", chat_id, message_id)
        try:
            chat = Chat.model_validate(chat_data)
        except ValidationError as e:
            raise MalformedChatRecord(f"Invalid chat {chat_id}: {e}", chat_id, message_id) from e

        recipient_ids = chat.recipients_for(message.senderId)
        result.recipientCount = len(recipient_ids)

        sender, *recipients = await asyncio.gather(
            self.firebase.get_document(USERS_COLLECTION, message.senderId),
            *(self._get_recipient(recipient_id) for recipient_id in recipient_ids)
        )
        if sender is None:
            raise MissingSenderRecord(
                f"Sender {message.senderId} of message {message_id} not found", chat_id, message_id
            )
        sender_name = self._sender_name(message.senderId, sender)

        tokens = [user.fcmToken for user in recipients if user is not None and user.fcmToken]
        result.tokenCount = len(tokens)

        if not tokens:
            logger.info("No tokens to send to.", extra={'chatId': chat_id, 'messageId': message_id})
            return result

        payload = NotificationPayload.for_message(chat_id, chat, message, sender_name)
        await self._send_all(tokens, payload, result)

        logger.info(
            f"Notification sent to {result.successCount} of {result.tokenCount} devices.",
            extra=result.model_dump()
        )
        return result

    def _parse_message(self, chat_id: str, message_id: str,
                       message_data: Optional[Mapping[str, Any]]) -> Message:
        if not isinstance(message_data, Mapping):
            raise MalformedMessage(f"Message {message_id} has no data", chat_id, message_id)
        try:
            return Message.model_validate(dict(message_data))
        except ValidationError as e:
            raise MalformedMessage(f"Invalid message {message_id}: {e}", chat_id, message_id) from e

    def _sender_name(self, sender_id: str, sender_data: Mapping[str, Any]) -> Optional[str]:
        try:
            return SenderProfile.model_validate(sender_data).name
        except ValidationError as e:
            logger.warning(f"Invalid name on sender {sender_id}, sending without it: {str(e)}")
            return None

    async def _get_recipient(self, user_id: str) -> Optional[User]:
        """Fetch a recipient, returning None when they cannot be notified."""
        try:
            user_data = await self.firebase.get_document(USERS_COLLECTION, user_id)
        except Exception as e:
            logger.warning(f"Error fetching recipient {user_id}, skipping: {str(e)}")
            return None

        if user_data is None:
            logger.warning(f"Recipient {user_id} not found, skipping notification")
            return None

        try:
            user = User.model_validate(user_data)
        except ValidationError as e:
            logger.warning(f"Invalid user record for recipient {user_id}, skipping: {str(e)}")
            return None

        if not user.fcmToken:
            logger.debug(f"Recipient {user_id} has no device token")
        return user

    async def _send_all(self, tokens: List[str], payload: NotificationPayload,
                        result: DispatchResult) -> None:
        """Send to every token concurrently and wait for all sends to settle."""
        outcomes = await asyncio.gather(
            *(self.firebase.send_notification(token, payload) for token in tokens),
            return_exceptions=True
        )

        for token, outcome in zip(tokens, outcomes):
            if not isinstance(outcome, BaseException):
                result.successCount += 1
                continue

            result.failureCount += 1
            if is_stale_token_error(outcome):
                result.staleTokenCount += 1
                logger.warning(f"Stale FCM token {token_prefix(token)}...: {str(outcome)}")
            else:
                logger.error(f"Error sending notification to token {token_prefix(token)}...: {str(outcome)}")
