"""Shared pytest fixtures for testing."""

import base64
import os

import pytest

os.environ.setdefault("STORE_BACKEND", "memory")

from backend import MemoryBackend
from backlog import MessageBacklog
from clock import ManualClock
from errors import UpstreamServiceError
from pipeline import UtterancePipeline
from sessions import SessionStore


class FakeSpeech:
    """Stand-in for SpeechServices that records every call."""

    def __init__(self, transcript="hello", translations=None, fail_translate=(), fail_synthesize=()):
        self.transcript = transcript
        self.translations = translations or {}
        self.fail_translate = set(fail_translate)
        self.fail_synthesize = set(fail_synthesize)
        self.transcribe_calls = 0
        self.translate_calls = []
        self.synthesize_calls = []

    async def transcribe(self, audio, content_type=None):
        self.transcribe_calls += 1
        return self.transcript

    async def translate(self, text, source_language, target_language):
        if source_language == target_language:
            return text
        self.translate_calls.append(target_language)
        if target_language in self.fail_translate:
            raise UpstreamServiceError("translation", f"500 - boom ({target_language})")
        return self.translations.get(target_language, f"[{target_language}] {text}")

    async def synthesize(self, text, language):
        self.synthesize_calls.append(language)
        if language in self.fail_synthesize:
            raise UpstreamServiceError("synthesis", "timed out")
        return base64.b64encode(f"{language}:{text}".encode()).decode()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def backend(clock) -> MemoryBackend:
    return MemoryBackend(clock=clock)


@pytest.fixture
def sessions(backend, clock) -> SessionStore:
    return SessionStore(backend, clock=clock, ttl=3600)


@pytest.fixture
def backlog(backend) -> MessageBacklog:
    return MessageBacklog(backend, ttl=3600, max_length=50)


@pytest.fixture
def room(sessions) -> str:
    return sessions.create()


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech(translations={"es": "hola", "fr": "bonjour"})


@pytest.fixture
def pipeline(sessions, backlog, speech, clock) -> UtterancePipeline:
    return UtterancePipeline(sessions, backlog, speech, clock=clock, min_audio_bytes=1000)


@pytest.fixture
def audio() -> bytes:
    return b"\x1aE\xdf\xa3" + b"\x00" * 2000
