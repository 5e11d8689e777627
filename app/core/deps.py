from dataclasses import dataclass
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import async_session_maker
from app.core.exceptions import AppException
from app.core.security import decode_access_token
from app.cron.queue_processor import QueueProcessor
from app.models.enums import Role


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Staff member of a school, as described by the JWT issued by the school system."""
    id: str
    school_id: UUID
    role: Role


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """Decode the bearer token; the school (tenant) comes from its school_id claim."""
    if credentials is None or not credentials.credentials:
        AppException().raise_401("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        AppException().raise_401("Could not validate credentials")

    try:
        school_uuid = UUID(str(payload["school_id"]))
    except (ValueError, TypeError):
        AppException().raise_401("Invalid school ID format in token.")
    try:
        role = Role(payload.get("role") or Role.staff.value)
    except ValueError:
        AppException().raise_401("Unknown role in token.")

    return CurrentUser(id=str(payload["sub"]), school_id=school_uuid, role=role)


def get_queue_processor(request: Request) -> QueueProcessor:
    """The app-wide processor, so manual triggers share the cron loop's in-flight guard."""
    processor = getattr(request.app.state, "queue_processor", None)
    if processor is None:
        processor = QueueProcessor()
        request.app.state.queue_processor = processor
    return processor
