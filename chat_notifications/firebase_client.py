import asyncio
import json
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore, messaging
from firebase_admin.exceptions import InvalidArgumentError
from google.api_core import exceptions as google_exceptions
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import settings
from .schemas import NotificationPayload

logger = logging.getLogger(__name__)

# Firestore errors worth another attempt before giving up on a read
TRANSIENT_READ_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)

# FCM errors meaning the device token will never work again
STALE_TOKEN_ERRORS = (
    messaging.UnregisteredError,
    messaging.SenderIdMismatchError,
    InvalidArgumentError,
)


def is_stale_token_error(error: BaseException) -> bool:
    """Return True if a send failure means the target token is dead."""
    return isinstance(error, STALE_TOKEN_ERRORS)


class FirebaseClient:
    """Process-wide Firebase client giving Firestore reads and FCM sends."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(FirebaseClient, cls).__new__(cls)
            cls._instance.initialized = False
        return cls._instance

    def __init__(self):
        if self.initialized:
            return
        self.app = None
        self.firestore_db = None
        self.connect()
        self.initialized = True

    def connect(self) -> None:
        """Attach to the default Firebase app, creating it on first use."""
        try:
            # Try to get the existing default app
            self.app = firebase_admin.get_app()
            logger.info("Retrieved existing Firebase app")
        except ValueError:
            options = {}
            if settings.firebase_project_id:
                options["projectId"] = settings.firebase_project_id

            cert_json = settings.firebase_secret
            if cert_json:
                cert_dict = json.loads(cert_json)
                if isinstance(cert_dict, str):
                    cert_dict = json.loads(cert_dict)
                cred = credentials.Certificate(cert_dict)
            else:
                # Cloud Functions provides application default credentials
                cred = None

            self.app = firebase_admin.initialize_app(credential=cred, options=options or None)
            logger.info(f"Initialized Firebase app: {self.app.name}")

        self.firestore_db = firestore.client(self.app)

    async def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """
        Read a single Firestore document.

        Transient backend errors are retried with exponential backoff; any
        other error, or the last transient one, is raised to the caller.

        Args:
            collection: Collection name, e.g. 'chats' or 'users'
            document_id: Document ID inside the collection

        Returns:
            The document's fields, or None if the document does not exist
        """
        doc_ref = self.firestore_db.collection(collection).document(document_id)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_READ_ERRORS),
            stop=stop_after_attempt(settings.read_retry_attempts),
            wait=wait_exponential(multiplier=settings.read_retry_backoff_seconds),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying read of {collection}/{document_id} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                snapshot = await asyncio.to_thread(doc_ref.get)

        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def build_message(self, token: str, payload: NotificationPayload) -> messaging.Message:
        """Build the FCM message for one device token."""
        return messaging.Message(
            token=token,
            notification=messaging.Notification(
                title=payload.title,
                body=payload.body
            ),
            data=payload.data,
            android=messaging.AndroidConfig(
                notification=messaging.AndroidNotification(click_action=settings.click_action)
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(category=settings.click_action))
            ),
        )

    async def send_notification(self, token: str, payload: NotificationPayload) -> str:
        """
        Send a push notification to one device.

        Args:
            token: FCM registration token of the device
            payload: Title, body and data of the notification

        Returns:
            The FCM message ID

        Raises:
            FirebaseError: If FCM rejects the message
        """
        message = self.build_message(token, payload)
        return await asyncio.to_thread(messaging.send, message, app=self.app)
