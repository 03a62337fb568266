# Cloud Functions entry point: the runtime loads triggers from main.py
from chat_notifications.functions import send_chat_notification

__all__ = ["send_chat_notification"]
