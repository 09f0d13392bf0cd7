import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# "redis" or "memory"
STORE_BACKEND = os.getenv("STORE_BACKEND", "redis")

ROOM_TTL_SECONDS = int(os.getenv("ROOM_TTL_SECONDS", 3600))
MAX_MESSAGES = int(os.getenv("MAX_MESSAGES", 50))
ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Recordings below this size are rejected before transcription
MIN_AUDIO_BYTES = int(os.getenv("MIN_AUDIO_BYTES", 1000))

STT_URL = os.getenv("STT_URL", "")
LLM_URL = os.getenv("LLM_URL", "")
TTS_URL = os.getenv("TTS_URL", "")
SPEECH_API_KEY = os.getenv("SPEECH_API_KEY", "")
SPEECH_TIMEOUT_SECONDS = float(os.getenv("SPEECH_TIMEOUT_SECONDS", 30))
TTS_MODEL = os.getenv("TTS_MODEL", "resemble-ai-chatterbox-multilingual")
