from typing import List

from backend import KeyValueBackend
from constants import MAX_MESSAGES, ROOM_TTL_SECONDS
from logging_config import get_logger
from models import AudioMessage
from redis_keys import REDIS_MESSAGES_KEY
from sessions import normalize_code, room_keys

logger = get_logger(__name__)


class MessageBacklog:
    """Bounded, time-limited log of produced audio messages per room."""

    def __init__(self, backend: KeyValueBackend, ttl: int = ROOM_TTL_SECONDS, max_length: int = MAX_MESSAGES):
        self.backend = backend
        self.ttl = ttl
        self.max_length = max_length

    def append(self, code: str, message: AudioMessage):
        code = normalize_code(code)
        key = REDIS_MESSAGES_KEY.format(code=code)
        self.backend.append(key, message.model_dump_json(), self.max_length, self.ttl)
        # Membership and meta share the backlog's clock
        self.backend.expire(room_keys(code), self.ttl)
        logger.debug(f"Appended message {message.id} to room {code}")

    def all(self, code: str) -> List[AudioMessage]:
        key = REDIS_MESSAGES_KEY.format(code=normalize_code(code))
        return [AudioMessage.model_validate_json(raw) for raw in self.backend.lrange(key)]

    def since(self, code: str, timestamp: int = 0) -> List[AudioMessage]:
        # sorted() is stable, so equal timestamps keep append order
        return sorted((m for m in self.all(code) if m.timestamp > timestamp), key=lambda m: m.timestamp)
