from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from app.schemas.booking import BookingCreate, BookingResponse, BookingListResponse
from app.schemas.common import Pagination

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingResponse", "BookingListResponse",
    "Pagination",
]
