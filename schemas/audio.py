from pydantic import BaseModel
from typing import Dict, Optional

from models import User


class SubmitAudioResponse(BaseModel):
    success: bool = True
    message_id: Optional[str] = None
    original_text: Optional[str] = None
    translations: Optional[Dict[str, str]] = None
    # Set only when nothing was produced
    message: Optional[str] = None

class PolledMessage(BaseModel):
    id: str
    sender_id: str
    sender_name: str
    text: str
    timestamp: int
    audio: str

class PollResponse(BaseModel):
    success: bool = True
    messages: list[PolledMessage]
    users: list[User]
    # cursor for the next poll
    timestamp: int
