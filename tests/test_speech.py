"""Unit tests for the speech service clients."""

import asyncio
import base64
import json
import time

import httpx
import pytest

from errors import UpstreamServiceError
from speech import SpeechServices, audio_filename


def make_services(handler, api_key="test-key", timeout=30.0) -> SpeechServices:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SpeechServices(
        stt_url="https://stt.test/v1/transcribe",
        llm_url="https://llm.test/v1/chat/completions",
        tts_url="https://tts.test/v1/synthesize",
        api_key=api_key,
        timeout=timeout,
        client=client,
    )


class TestTranscribe:
    """Tests for speech-to-text."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["text", "transcription", "transcript", "result"])
    async def test_accepts_alternate_keys(self, key):
        def handler(request):
            return httpx.Response(200, json={key: "hello there"})

        services = make_services(handler)
        assert await services.transcribe(b"audio", "audio/webm") == "hello there"

    @pytest.mark.asyncio
    async def test_sends_multipart_with_auth(self):
        captured = {}

        def handler(request):
            captured["auth"] = request.headers["authorization"]
            captured["body"] = request.content
            captured["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"text": "hi"})

        services = make_services(handler)
        await services.transcribe(b"RIFFdata", "audio/wav")

        assert captured["auth"] == "Bearer test-key"
        assert captured["content_type"].startswith("multipart/form-data")
        assert b'filename="audio.wav"' in captured["body"]
        assert b"RIFFdata" in captured["body"]

    @pytest.mark.asyncio
    async def test_non_2xx_fails(self):
        services = make_services(lambda request: httpx.Response(500, text="overloaded"))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await services.transcribe(b"audio")
        assert exc_info.value.service == "transcription"

    @pytest.mark.asyncio
    async def test_invalid_json_fails(self):
        services = make_services(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(UpstreamServiceError):
            await services.transcribe(b"audio")

    @pytest.mark.asyncio
    async def test_timeout_fails(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        services = make_services(handler)
        with pytest.raises(UpstreamServiceError) as exc_info:
            await services.transcribe(b"audio")
        assert exc_info.value.reason == "timed out"

    @pytest.mark.asyncio
    async def test_slow_body_hits_overall_deadline(self):
        async def trickle():
            for byte in b'{"text": "hi there"}':
                await asyncio.sleep(0.1)
                yield bytes([byte])

        def handler(request):
            return httpx.Response(200, headers={"content-type": "application/json"}, content=trickle())

        services = make_services(handler, timeout=0.3)
        started = time.monotonic()
        with pytest.raises(UpstreamServiceError) as exc_info:
            await services.transcribe(b"audio")

        assert exc_info.value.reason == "timed out"
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        captured = {}

        def handler(request):
            captured["headers"] = request.headers
            return httpx.Response(200, json={"text": "hi"})

        services = make_services(handler, api_key="")
        await services.transcribe(b"audio")

        assert "authorization" not in captured["headers"]

    def test_filename_from_mime(self):
        assert audio_filename("audio/mp4") == "audio.m4a"
        assert audio_filename("audio/webm;codecs=opus") == "audio.webm"
        assert audio_filename(None) == "audio.webm"


class TestTranslate:
    """Tests for translation."""

    @pytest.mark.asyncio
    async def test_same_language_skips_network(self):
        def handler(request):
            raise AssertionError("no request expected")

        services = make_services(handler)
        assert await services.translate("hello", "en", "en") == "hello"

    @pytest.mark.asyncio
    async def test_chat_completion_request(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"content": "  hola \n"}}]})

        services = make_services(handler)
        assert await services.translate("hello", "en", "es") == "hola"

        system, user = captured["messages"]
        assert system["role"] == "system"
        assert "English" in system["content"] and "Spanish" in system["content"]
        assert user == {"role": "user", "content": "hello"}
        assert captured["temperature"] == 0.3
        assert captured["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_prompt_uses_mandarin_name(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"content": "ni hao"}}]})

        services = make_services(handler)
        await services.translate("hello", "en", "zh")

        assert "Chinese (Mandarin)" in captured["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_missing_choices_fails(self):
        services = make_services(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(UpstreamServiceError):
            await services.translate("hello", "en", "es")


class TestSynthesize:
    """Tests for text-to-speech."""

    @pytest.mark.asyncio
    async def test_raw_audio_is_base64_encoded(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, content=b"\xff\xfbMP3", headers={"content-type": "audio/mpeg"})

        services = make_services(handler)
        payload = await services.synthesize("hola", "es")

        assert base64.b64decode(payload) == b"\xff\xfbMP3"
        assert captured["text"] == "hola"
        assert {"name": "language_id", "value": "es"} in captured["model_config"]

    @pytest.mark.asyncio
    async def test_octet_stream_is_base64_encoded(self):
        services = make_services(
            lambda request: httpx.Response(200, content=b"WAV", headers={"content-type": "application/octet-stream"})
        )

        assert await services.synthesize("hi", "en") == base64.b64encode(b"WAV").decode()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["audio", "data"])
    async def test_json_envelope(self, field):
        services = make_services(lambda request: httpx.Response(200, json={field: "UklGRg=="}))

        assert await services.synthesize("hi", "en") == "UklGRg=="

    @pytest.mark.asyncio
    async def test_empty_envelope_fails(self):
        services = make_services(lambda request: httpx.Response(200, json={}))

        with pytest.raises(UpstreamServiceError):
            await services.synthesize("hi", "en")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("envelope", [{"audio": 12345}, {"data": ["UklGRg=="]}, {"audio": "not base64!"}])
    async def test_malformed_envelope_fails(self, envelope):
        services = make_services(lambda request: httpx.Response(200, json=envelope))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await services.synthesize("hi", "en")
        assert exc_info.value.reason == "unparseable audio envelope"
