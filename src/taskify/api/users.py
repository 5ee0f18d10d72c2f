"""User API routes.

POST /users is idempotent on email: 201 when the profile is new,
200 with the stored profile when the email is already known.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.db.engine import get_db, require_store
from taskify.schemas.results import UserWrite
from taskify.services.user_service import UserService

# Tables are created here on first use if startup couldn't reach the store.
router = APIRouter(dependencies=[Depends(require_store)])


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/users", response_model=UserWrite, status_code=201)
async def create_user(
    response: Response,
    body: dict[str, Any] = Body(...),
    svc: UserService = Depends(_user_svc),
):
    user, created = await svc.create_user(body)
    if not created:
        response.status_code = 200
        return {"message": "User already exists", "user": user}
    return {"message": "User created successfully", "user": user}


@router.get("/users")
async def list_users(svc: UserService = Depends(_user_svc)):
    return await svc.list_users()
