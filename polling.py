from dataclasses import dataclass
from typing import List, Optional

from backlog import MessageBacklog
from errors import NotFoundError, ValidationError
from languages import validate_language
from models import User
from sessions import SessionStore, normalize_code


@dataclass
class DeliveredMessage:
    id: str
    sender_id: str
    sender_name: str
    text: str
    timestamp: int
    audio: str


@dataclass
class PollResult:
    messages: List[DeliveredMessage]
    users: List[User]
    cursor: int


def poll(sessions: SessionStore, backlog: MessageBacklog, room_code: str, user_id: str,
         language: str, since: Optional[int] = 0) -> PollResult:
    """Messages for one listener since its cursor, plus the room's members and the next cursor.

    Own messages and messages without audio in the listener's language are
    skipped. The server keeps no per-client state; the caller advances the cursor.
    """
    if not user_id:
        raise ValidationError("Missing required params")
    validate_language(language)
    code = normalize_code(room_code)
    since = max(since or 0, 0)
    if not sessions.exists(code):
        raise NotFoundError(f"Room {code} not found")

    fresh = backlog.since(code, since)
    cursor = max([since] + [m.timestamp for m in fresh])

    messages = [
        DeliveredMessage(
            id=m.id,
            sender_id=m.sender_id,
            sender_name=m.sender_name,
            text=m.original_text,
            timestamp=m.timestamp,
            audio=m.audio_by_language[language],
        )
        for m in fresh
        if m.sender_id != user_id and m.audio_by_language.get(language)
    ]
    return PollResult(messages=messages, users=sessions.list_users(code), cursor=cursor)
