import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fastapi.testclient import TestClient

from chatbot_service.main import app

client = TestClient(app)


def test_message_returns_canned_reply():
    res = client.post("/api/v1/chatbot/message", json={"message": "Is Room A free?", "session_id": "abc"})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["session_id"] == "abc"
    assert body["message"]


def test_empty_message_is_rejected():
    res = client.post("/api/v1/chatbot/message", json={"message": ""})
    assert res.status_code == 422


def test_history_is_empty():
    res = client.get("/api/v1/chatbot/history/abc")
    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Chat history for session abc",
        "history": [],
    }
