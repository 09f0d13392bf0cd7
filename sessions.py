import json
import random
import string
from typing import List, Set

from backend import KeyValueBackend
from clock import system_clock
from constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, ROOM_TTL_SECONDS
from errors import NotFoundError, ValidationError
from languages import validate_language
from logging_config import get_logger
from models import User
from redis_keys import REDIS_META_KEY, REDIS_MESSAGES_KEY, REDIS_USERS_KEY

logger = get_logger(__name__)

MAX_CODE_ATTEMPTS = 10


def generate_room_code() -> str:
    return "".join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def _random_suffix(length: int = 9) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def generate_user_id(clock=system_clock) -> str:
    return f"user_{clock.now_ms()}_{_random_suffix()}"


def generate_message_id(clock=system_clock) -> str:
    return f"msg_{clock.now_ms()}_{_random_suffix()}"


def normalize_code(code) -> str:
    if not code or not str(code).strip():
        raise ValidationError("Room code required")
    return str(code).strip().upper()


def room_keys(code: str) -> List[str]:
    return [
        REDIS_META_KEY.format(code=code),
        REDIS_USERS_KEY.format(code=code),
        REDIS_MESSAGES_KEY.format(code=code),
    ]


class SessionStore:
    """Room membership with a sliding expiry. Every mutation refreshes the full TTL."""

    def __init__(self, backend: KeyValueBackend, clock=system_clock, ttl: int = ROOM_TTL_SECONDS):
        self.backend = backend
        self.clock = clock
        self.ttl = ttl

    def create(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_room_code()
            if self.exists(code):
                logger.debug(f"Room code collision on {code}, regenerating")
                continue
            meta = {"code": code, "created_at": self.clock.now_ms()}
            self.backend.set(REDIS_META_KEY.format(code=code), json.dumps(meta), self.ttl)
            logger.info(f"Room {code} created with TTL {self.ttl} seconds")
            return code
        raise RuntimeError("Could not allocate a free room code")

    def exists(self, code: str) -> bool:
        return self.backend.exists(REDIS_META_KEY.format(code=normalize_code(code)))

    def touch(self, code: str):
        self.backend.expire(room_keys(normalize_code(code)), self.ttl)

    def join(self, code: str, user_id: str, name: str, language: str) -> User:
        code = normalize_code(code)
        validate_language(language)
        if not name or not name.strip():
            raise ValidationError("Name required")
        if not self.exists(code):
            logger.warning(f"Join failed: Room {code} not found")
            raise NotFoundError(f"Room {code} not found")

        user = User(id=user_id, name=name.strip(), language=language, joined_at=self.clock.now_ms())
        self.backend.hset(REDIS_USERS_KEY.format(code=code), user_id, user.model_dump_json(), self.ttl)
        self.touch(code)
        logger.info(f"User {user_id} ({user.name}, {language}) joined room {code}")
        return user

    def leave(self, code: str, user_id: str) -> bool:
        """Remove a member. Repeated or unknown leaves succeed; False only when the room is gone."""
        code = normalize_code(code)
        if not self.exists(code):
            logger.debug(f"Leave ignored: Room {code} not found")
            return False
        self.backend.hdel(REDIS_USERS_KEY.format(code=code), user_id, self.ttl)
        self.touch(code)
        logger.info(f"User {user_id} left room {code}")
        return True

    def list_users(self, code: str) -> List[User]:
        code = normalize_code(code)
        raw = self.backend.hgetall(REDIS_USERS_KEY.format(code=code))
        users = [User.model_validate_json(value) for value in raw.values()]
        users.sort(key=lambda u: (u.joined_at, u.id))
        return users

    def get_user(self, code: str, user_id: str):
        for user in self.list_users(code):
            if user.id == user_id:
                return user
        return None

    def other_languages(self, code: str, exclude_user_id: str) -> Set[str]:
        return {u.language for u in self.list_users(code) if u.id != exclude_user_id}
