from typing import List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """
    Message typed into the chat widget.
    """
    message: str = Field(..., min_length=1, max_length=1000)
    session_id: Optional[str] = None


class ChatReply(BaseModel):
    success: bool
    message: str
    session_id: Optional[str] = None


class ChatHistory(BaseModel):
    success: bool
    message: str
    history: List[str] = Field(default_factory=list)
