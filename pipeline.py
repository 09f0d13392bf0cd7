import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from backlog import MessageBacklog
from clock import system_clock
from constants import MIN_AUDIO_BYTES
from errors import FanoutError, NotFoundError, PipelineFailure, StoreError, UpstreamServiceError, ValidationError
from fanout import synthesize_all, translate_all
from languages import resolve_targets, validate_language
from logging_config import get_logger
from models import AudioMessage
from sessions import SessionStore, generate_message_id, normalize_code

logger = get_logger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    RESOLVING_TARGETS = "resolving_targets"
    TRANSCRIBING = "transcribing"
    TRANSLATING = "translating"
    SYNTHESIZING = "synthesizing"
    APPENDING = "appending"
    APPENDED = "appended"
    FAILED = "failed"


@dataclass
class UtteranceResult:
    stages: List[Stage] = field(default_factory=list)
    message: Optional[AudioMessage] = None
    original_text: Optional[str] = None
    translations: Dict[str, str] = field(default_factory=dict)

    @property
    def produced(self) -> bool:
        return self.message is not None


def _reason(error: Exception) -> str:
    if isinstance(error, FanoutError):
        return "; ".join(f"{lang}: {_reason(e)}" for lang, e in error.errors.items())
    if isinstance(error, UpstreamServiceError):
        return str(error)
    return str(error) or type(error).__name__


class UtterancePipeline:
    """Turns one recorded utterance into a backlog message with audio for every target language.

    Either every target language gets audio and one message is appended, or
    nothing is appended and PipelineFailure names the stage that failed.
    """

    def __init__(self, sessions: SessionStore, backlog: MessageBacklog, services, clock=system_clock,
                 min_audio_bytes: int = MIN_AUDIO_BYTES):
        self.sessions = sessions
        self.backlog = backlog
        self.services = services
        self.clock = clock
        self.min_audio_bytes = min_audio_bytes

    def _validate(self, room_code, user_id, audio, language):
        if not room_code or not user_id or audio is None:
            raise ValidationError("Missing required fields")
        code = normalize_code(room_code)
        if not self.sessions.exists(code):
            raise NotFoundError(f"Room {code} not found")
        if len(audio) < self.min_audio_bytes:
            raise ValidationError("Recording too short - please hold the button longer")

        sender = self.sessions.get_user(code, user_id)
        language = language or (sender.language if sender else None)
        if not language:
            raise ValidationError("Missing language")
        validate_language(language)
        return code, sender, language

    async def process(self, room_code: str, user_id: str, audio: bytes,
                      language: Optional[str] = None, content_type: Optional[str] = None) -> UtteranceResult:
        code, sender, language = self._validate(room_code, user_id, audio, language)
        result = UtteranceResult(stages=[Stage.RECEIVED])
        started = time.monotonic()
        sender_name = sender.name if sender else "Unknown"
        logger.info(f"[Pipeline] Processing audio from {sender_name} ({user_id}) in {language}, room {code}")

        stage = Stage.RESOLVING_TARGETS
        try:
            result.stages.append(stage)
            targets = resolve_targets(self.sessions, code, user_id, language)
            if not targets:
                logger.info(f"[Pipeline] No target languages in room {code}, nothing to produce")
                return result

            stage = Stage.TRANSCRIBING
            result.stages.append(stage)
            text = await self.services.transcribe(audio, content_type)
            if not text or not text.strip():
                raise ValidationError("No speech detected in audio")
            result.original_text = text
            logger.info(f"[Pipeline] Transcribed: {text}")

            stage = Stage.TRANSLATING
            result.stages.append(stage)
            translations, _ = await translate_all(self.services, text, language, targets)
            result.translations = translations

            stage = Stage.SYNTHESIZING
            result.stages.append(stage)
            audio_by_language, _ = await synthesize_all(self.services, translations)

            message = AudioMessage(
                id=generate_message_id(self.clock),
                sender_id=user_id,
                sender_name=sender_name,
                original_text=text,
                timestamp=self.clock.now_ms(),
                audio_by_language=audio_by_language,
            )
            stage = Stage.APPENDING
            result.stages.append(stage)
            self.backlog.append(code, message)
        except (UpstreamServiceError, FanoutError, StoreError) as e:
            result.stages.append(Stage.FAILED)
            logger.error(f"[Pipeline] Failed at {stage.value} in room {code}: {_reason(e)}")
            raise PipelineFailure(stage.value, _reason(e), transient=isinstance(e, StoreError)) from e

        result.stages.append(Stage.APPENDED)
        result.message = message
        logger.info(
            f"[Pipeline] Message {message.id} appended to room {code} with languages "
            f"{sorted(audio_by_language)} in {time.monotonic() - started:.2f}s"
        )
        return result
