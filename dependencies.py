from functools import lru_cache

from backend import get_backend
from backlog import MessageBacklog
from pipeline import UtterancePipeline
from sessions import SessionStore
from speech import SpeechServices


def get_sessions() -> SessionStore:
    return SessionStore(get_backend())


def get_backlog() -> MessageBacklog:
    return MessageBacklog(get_backend())


@lru_cache
def get_speech_services() -> SpeechServices:
    return SpeechServices()


def get_pipeline() -> UtterancePipeline:
    return UtterancePipeline(get_sessions(), get_backlog(), get_speech_services())
