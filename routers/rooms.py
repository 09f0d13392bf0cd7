from fastapi import APIRouter, Depends, HTTPException, Request
from schemas.rooms import CreateRoomResponse, JoinRoomRequest, JoinRoomResponse, LeaveRoomRequest, LeaveRoomResponse, RoomDetailsResponse
from dependencies import get_sessions
from errors import NotFoundError, StoreError, ValidationError
from sessions import SessionStore, generate_user_id, normalize_code
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def _client_host(request: Request) -> str:
    return request.client.host if request and request.client else "unknown"


@rooms_router.post("", response_model=CreateRoomResponse)
async def create_room(request: Request, sessions: SessionStore = Depends(get_sessions)):
    logger.info(f"Room creation request from {_client_host(request)}")
    try:
        code = sessions.create()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create room")
    return CreateRoomResponse(room_code=code)


@rooms_router.get("/{room_code}", response_model=RoomDetailsResponse)
async def get_room_details(room_code: str, request: Request, sessions: SessionStore = Depends(get_sessions)):
    """
    Get room details and its current members.

    Returns:
    - room_code: Canonical (uppercase) room code
    - users: Members ordered by join time
    """
    logger.info(f"Room details request for {room_code} from {_client_host(request)}")
    try:
        code = normalize_code(room_code)
        if not sessions.exists(code):
            logger.warning(f"Room details failed: Room {code} not found")
            raise HTTPException(status_code=404, detail="Room not found")
        users = sessions.list_users(code)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RoomDetailsResponse(room_code=code, users=users)


@rooms_router.post("/{room_code}/join", response_model=JoinRoomResponse)
async def join_room(room_code: str, join_room_request: JoinRoomRequest, request: Request,
                    sessions: SessionStore = Depends(get_sessions)):
    logger.info(f"Join room request for {room_code} from {_client_host(request)}, name: {join_room_request.name}")
    user_id = generate_user_id()
    try:
        code = normalize_code(room_code)
        user = sessions.join(code, user_id, join_room_request.name, join_room_request.language)
    except ValidationError as e:
        logger.warning(f"Join room failed for {room_code}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Room not found")
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return JoinRoomResponse(user_id=user_id, user=user, room_code=code)


@rooms_router.post("/{room_code}/leave", response_model=LeaveRoomResponse)
async def leave_room(room_code: str, leave_room_request: LeaveRoomRequest, request: Request,
                     sessions: SessionStore = Depends(get_sessions)):
    # Leaving is idempotent; an expired room counts as already left
    logger.info(f"Leave room request for {room_code} from {_client_host(request)}, user: {leave_room_request.user_id}")
    try:
        sessions.leave(room_code, leave_room_request.user_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return LeaveRoomResponse()
