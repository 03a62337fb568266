import asyncio
import logging
from typing import Any, Mapping, Optional

from firebase_functions import firestore_fn

from .config import settings
from .dispatcher import NotificationDispatcher
from .exceptions import DispatchError
from .firebase_client import FirebaseClient
from .logging_setup import setup_logging
from .schemas import DispatchResult

logger = logging.getLogger(__name__)

MESSAGE_DOCUMENT = "chats/{chatId}/messages/{messageId}"

# Built once per process and reused by every invocation
_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Return the process-wide dispatcher, initializing Firebase on first call."""
    global _dispatcher
    if _dispatcher is None:
        setup_logging()
        _dispatcher = NotificationDispatcher(FirebaseClient())
        logger.info(f"Chat notification dispatcher initialized in {settings.environment} environment")
    return _dispatcher


def handle_message_created(params: Mapping[str, str],
                           message_data: Optional[Mapping[str, Any]]) -> Optional[DispatchResult]:
    """
    Run the dispatcher for one created message document.

    Args:
        params: Path parameters of the created document (chatId, messageId)
        message_data: Fields of the created document

    Returns:
        DispatchResult, or None if the dispatch was aborted
    """
    chat_id = params.get('chatId')
    message_id = params.get('messageId')
    # Configures logging on a cold start
    dispatcher = get_dispatcher()
    logger.info(f"Processing new message {message_id} in chat {chat_id}")

    try:
        return asyncio.run(dispatcher.dispatch(chat_id, message_id, message_data))
    except DispatchError as e:
        logger.error(
            f"Aborted notification for message {message_id}: {str(e)}",
            extra={'chatId': e.chat_id, 'messageId': e.message_id, 'reason': type(e).__name__}
        )
        return None


def handle_event(event) -> Optional[DispatchResult]:
    """Unwrap a Firestore document-created event and dispatch it."""
    if event.data is None:
        logger.warning(f"Document-created event without a snapshot: {dict(event.params)}")
        return None
    return handle_message_created(event.params, event.data.to_dict())


@firestore_fn.on_document_created(document=MESSAGE_DOCUMENT, region=settings.function_region)
def send_chat_notification(event: firestore_fn.Event[Optional[firestore_fn.DocumentSnapshot]]) -> None:
    handle_event(event)
