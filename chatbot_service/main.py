from fastapi import FastAPI, APIRouter

from common.logging_config import configure_logging

from . import schemas

SERVICE_NAME = "chatbot"
logger = configure_logging(SERVICE_NAME)

app = FastAPI(title="Chatbot Service", version="1.0.0")
router_v1 = APIRouter(prefix="/api/v1")


@app.get("/")
def root():
    return {"service": "chatbot", "status": "running"}


@router_v1.post("/chatbot/message", response_model=schemas.ChatReply)
def process_message(chat_in: schemas.ChatMessage):
    """
    Placeholder for the chat widget.

    Answers with canned text; no message is interpreted or stored.
    """
    logger.debug("Chat message received for session %s", chat_in.session_id)
    return {
        "success": True,
        "message": "Thanks for your message! Our booking assistant is coming soon.",
        "session_id": chat_in.session_id,
    }


@router_v1.get("/chatbot/history/{session_id}", response_model=schemas.ChatHistory)
def get_history(session_id: str):
    """
    Placeholder chat history: always empty.
    """
    return {
        "success": True,
        "message": f"Chat history for session {session_id}",
        "history": [],
    }


app.include_router(router_v1)
