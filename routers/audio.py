from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse

from backlog import MessageBacklog
from dependencies import get_backlog, get_pipeline, get_sessions
from errors import NotFoundError, PipelineFailure, StoreError, ValidationError
from logging_config import get_logger
from pipeline import UtterancePipeline
from polling import poll
from schemas.audio import PolledMessage, PollResponse, SubmitAudioResponse
from sessions import SessionStore

logger = get_logger(__name__)

audio_router = APIRouter(tags=["audio"])


@audio_router.post("/audio", response_model=SubmitAudioResponse)
async def submit_audio(
    audio: UploadFile = File(...),
    room_code: str = Form(...),
    user_id: str = Form(...),
    language: Optional[str] = Form(None),
    pipeline: UtterancePipeline = Depends(get_pipeline),
):
    payload = await audio.read()
    logger.info(f"Audio submitted to room {room_code} by {user_id}: {len(payload)} bytes, {audio.content_type}")
    try:
        result = await pipeline.process(room_code, user_id, payload, language=language, content_type=audio.content_type)
    except ValidationError as e:
        logger.warning(f"Audio rejected for room {room_code}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Room not found")
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except PipelineFailure as e:
        return JSONResponse(
            status_code=503 if e.transient else 502,
            content={"success": False, "stage": e.stage, "error": e.reason},
        )

    if not result.produced:
        return SubmitAudioResponse(message="No other users in room")
    return SubmitAudioResponse(
        message_id=result.message.id,
        original_text=result.original_text,
        translations=result.translations,
    )


@audio_router.get("/poll", response_model=PollResponse)
async def poll_messages(
    room_code: str = Query(...),
    user_id: str = Query(...),
    language: str = Query(...),
    since: int = Query(0, ge=0),
    sessions: SessionStore = Depends(get_sessions),
    backlog: MessageBacklog = Depends(get_backlog),
):
    try:
        result = poll(sessions, backlog, room_code, user_id, language, since)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Room not found")
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if result.messages:
        logger.debug(f"Poll for {user_id} in room {room_code}: {len(result.messages)} new messages")
    return PollResponse(
        messages=[PolledMessage(**vars(m)) for m in result.messages],
        users=result.users,
        timestamp=result.cursor,
    )
