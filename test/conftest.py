import copy

import pytest


class FakeFirebaseClient:
    """In-memory stand-in for FirebaseClient."""

    def __init__(self, documents=None):
        self.documents = documents or {}
        self.read_errors = {}
        self.send_errors = {}
        self.reads = []
        self.sent = []

    async def get_document(self, collection, document_id):
        self.reads.append((collection, document_id))
        key = (collection, document_id)
        if key in self.read_errors:
            raise self.read_errors[key]
        if key not in self.documents:
            return None
        return copy.deepcopy(self.documents[key])

    async def send_notification(self, token, payload):
        self.sent.append((token, payload))
        if token in self.send_errors:
            raise self.send_errors[token]
        return f"projects/test-project/messages/{len(self.sent)}"


@pytest.fixture
def fake_client():
    return FakeFirebaseClient({
        ('chats', 'C1'): {'participants': ['u1', 'u2', 'u3'], 'isGroup': False},
        ('chats', 'G1'): {'participants': ['u1', 'u2', 'u3'], 'isGroup': True, 'groupName': 'Trip'},
        ('users', 'u1'): {'name': 'Alice', 'fcmToken': 'tokSender'},
        ('users', 'u2'): {'name': 'Bob', 'fcmToken': 'tokA'},
        ('users', 'u3'): {'name': 'Carol', 'fcmToken': ''},
    })
