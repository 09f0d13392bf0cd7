class BabelRoomError(Exception):
    """Base class for errors raised by the room and pipeline core."""


class ValidationError(BabelRoomError):
    """Missing or malformed input. Reported before any side effect."""


class NotFoundError(BabelRoomError):
    """Room code does not exist or has expired."""


class StoreError(BabelRoomError):
    """Backing store unavailable."""


class UpstreamServiceError(BabelRoomError):
    """A transcription, translation or synthesis call failed or timed out."""

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service} failed: {reason}")
        self.service = service
        self.reason = reason


class FanoutError(BabelRoomError):
    """One or more keys of a fan-out failed."""

    def __init__(self, errors: dict):
        self.errors = errors
        detail = "; ".join(f"{key}: {err}" for key, err in errors.items())
        super().__init__(detail)


class PipelineFailure(BabelRoomError):
    """Terminal failure of one utterance, carrying the stage it failed in."""

    def __init__(self, stage: str, reason: str, transient: bool = False):
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason
        self.transient = transient
