from typing import Dict

from pydantic import BaseModel


class User(BaseModel):
    id: str
    name: str
    language: str
    joined_at: int


class AudioMessage(BaseModel):
    id: str
    sender_id: str
    # Copied at creation time; later renames do not touch stored messages
    sender_name: str
    original_text: str
    timestamp: int
    # language code -> base64 encoded audio
    audio_by_language: Dict[str, str]
