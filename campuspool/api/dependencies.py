"""FastAPI dependency injection helpers."""

from typing import AsyncIterator, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campuspool.api.security import decode_access_token
from campuspool.domain.entities import User
from campuspool.infrastructure.repositories import SqlStorage
from campuspool.infrastructure.storage import Storage

bearer_scheme = HTTPBearer(auto_error=False)


async def get_storage(request: Request) -> AsyncIterator[Storage]:
    """
    Yield the storage backend picked at startup.

    For the SQL backend this is one session per request: commit on
    success, rollback on error.
    """
    memory = getattr(request.app.state, "memory_storage", None)
    if memory is not None:
        yield memory
        return

    async with request.app.state.session_factory() as session:
        try:
            yield SqlStorage(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage: Storage = Depends(get_storage),
) -> User:
    """Resolve the bearer token to a user, or fail with 401."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user = await storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user
