from pydantic import BaseModel

from models import User


class CreateRoomResponse(BaseModel):
    success: bool = True
    room_code: str

class JoinRoomRequest(BaseModel):
    name: str
    language: str

class JoinRoomResponse(BaseModel):
    success: bool = True
    user_id: str
    user: User
    room_code: str

class LeaveRoomRequest(BaseModel):
    user_id: str

class LeaveRoomResponse(BaseModel):
    success: bool = True

class RoomDetailsResponse(BaseModel):
    success: bool = True
    room_code: str
    users: list[User]
