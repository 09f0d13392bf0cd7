"""
Clients for the three speech services the pipeline calls:

- speech-to-text: multipart upload, JSON reply with the transcript
- translation: chat-completion request with a translator system prompt
- text-to-speech: JSON request, reply is raw audio or a JSON envelope with base64

Every call, body read included, is bounded by one overall deadline. Any
transport error, timeout, non-2xx status or unusable body raises
UpstreamServiceError.
"""

import asyncio
import base64
import binascii
import json
from typing import Optional

import httpx

from constants import (
    LLM_URL,
    SPEECH_API_KEY,
    SPEECH_TIMEOUT_SECONDS,
    STT_URL,
    TTS_MODEL,
    TTS_URL,
)
from errors import UpstreamServiceError
from languages import language_name
from logging_config import get_logger

logger = get_logger(__name__)

MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/webm;codecs=opus": "webm",
    "audio/mp4": "m4a",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
}

TRANSCRIPT_KEYS = ("text", "transcription", "transcript", "result")

TRANSLATION_PROMPT = (
    "You are a translator. Translate the following text from {source} into {target}. "
    "Output ONLY the translation, no preamble, no explanation, no quotes."
)


def audio_filename(content_type: Optional[str]) -> str:
    ext = MIME_EXTENSIONS.get((content_type or "").replace(" ", "").lower(), "webm")
    return f"audio.{ext}"


class SpeechServices:
    def __init__(
        self,
        stt_url: str = STT_URL,
        llm_url: str = LLM_URL,
        tts_url: str = TTS_URL,
        api_key: str = SPEECH_API_KEY,
        timeout: float = SPEECH_TIMEOUT_SECONDS,
        tts_model: str = TTS_MODEL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.stt_url = stt_url
        self.llm_url = llm_url
        self.tts_url = tts_url
        self.api_key = api_key
        self.tts_model = tts_model
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def aclose(self):
        await self._client.aclose()

    def _headers(self, **extra) -> dict:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        headers.update(extra)
        return headers

    async def _post(self, service: str, url: str, **kwargs) -> httpx.Response:
        try:
            # httpx timeouts apply per read; wait_for bounds the whole exchange
            response = await asyncio.wait_for(self._client.post(url, **kwargs), self.timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.warning(f"[{service}] Request timed out: {e}")
            raise UpstreamServiceError(service, "timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"[{service}] Request failed: {e}")
            raise UpstreamServiceError(service, str(e) or type(e).__name__) from e

        logger.debug(f"[{service}] Response status: {response.status_code}")
        if not response.is_success:
            raise UpstreamServiceError(service, f"{response.status_code} - {response.text[:200]}")
        return response

    @staticmethod
    def _json(service: str, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise UpstreamServiceError(service, f"invalid JSON: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise UpstreamServiceError(service, "unexpected response shape")
        return data

    async def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        filename = audio_filename(content_type)
        logger.info(f"[STT] Sending {len(audio)} bytes as {filename}")
        response = await self._post(
            "transcription",
            self.stt_url,
            headers=self._headers(Accept="application/json"),
            files={"file": (filename, audio, content_type or "audio/webm")},
        )
        data = self._json("transcription", response)
        for key in TRANSCRIPT_KEYS:
            if data.get(key):
                text = str(data[key])
                logger.debug(f"[STT] Extracted text: {text}")
                return text
        return ""

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        if source_language == target_language:
            return text

        payload = {
            "messages": [
                {
                    "role": "system",
                    "content": TRANSLATION_PROMPT.format(
                        source=language_name(source_language),
                        target=language_name(target_language),
                    ),
                },
                {"role": "user", "content": text},
            ],
            "temperature": 0.3,
            "max_tokens": 1000,
        }
        response = await self._post("translation", self.llm_url, headers=self._headers(), json=payload)
        data = self._json("translation", response)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamServiceError("translation", "no completion in response") from e
        translated = (content or "").strip()
        if not translated:
            raise UpstreamServiceError("translation", f"empty translation to {target_language}")
        return translated

    async def synthesize(self, text: str, language: str) -> str:
        """Synthesize speech and return it base64 encoded, whatever the reply format."""
        logger.info(f"[TTS] Synthesizing: {text[:50]} ... in {language}")
        payload = {
            "model": self.tts_model,
            "text": text,
            "model_config": [
                {"name": "exaggeration", "value": "0.5"},
                {"name": "cfg_weight", "value": "0.5"},
                {"name": "language_id", "value": language},
            ],
        }
        response = await self._post("synthesis", self.tts_url, headers=self._headers(), json=payload)

        content_type = response.headers.get("content-type", "")
        if "audio" in content_type or "octet-stream" in content_type:
            if not response.content:
                raise UpstreamServiceError("synthesis", "empty audio stream")
            logger.debug(f"[TTS] Got raw audio, size: {len(response.content)} bytes")
            return base64.b64encode(response.content).decode("ascii")

        data = self._json("synthesis", response)
        audio = data.get("audio") or data.get("data")
        if not audio:
            raise UpstreamServiceError("synthesis", "no audio in response")
        if not isinstance(audio, str):
            raise UpstreamServiceError("synthesis", "unparseable audio envelope")
        try:
            base64.b64decode(audio, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UpstreamServiceError("synthesis", "unparseable audio envelope") from e
        return audio
