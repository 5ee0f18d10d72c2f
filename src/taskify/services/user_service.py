"""User service — idempotent profile creation keyed by email.

Learn: "Create" here means "make sure it exists". A second POST with the
same email returns the stored record instead of failing. The unique
index on users.email backs this up when two requests race: the loser's
INSERT raises IntegrityError, we roll back and hand back the winner's row.
"""

from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.db.models import User
from taskify.errors import InvalidPayloadError
from taskify.services.payload import reject_non_finite

logger = structlog.get_logger()


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def create_user(self, payload: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        """Return (user document, created). created is False for an existing email."""
        email = payload.get("email")
        if not isinstance(email, str) or not email.strip():
            raise InvalidPayloadError("'email' must be a non-empty string")
        reject_non_finite(payload)

        existing = await self.get_by_email(email)
        if existing is not None:
            return existing.to_document(), False

        fields = {k: v for k, v in payload.items() if k not in ("id", "_id", "email")}
        user = User(email=email, fields=fields)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_by_email(email)
            if existing is None:
                raise
            logger.info("user.create_race_lost", email=email)
            return existing.to_document(), False

        logger.info("user.created", user_id=str(user.id))
        return user.to_document(), True

    async def list_users(self) -> list[dict[str, Any]]:
        result = await self.db.execute(select(User))
        return [user.to_document() for user in result.scalars().all()]
