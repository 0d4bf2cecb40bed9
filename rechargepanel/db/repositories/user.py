"""User account repository."""

from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import UserAccount
from rechargepanel.db.repositories.base import BaseRepository
from rechargepanel.schemas.user import UserCreate, UserUpdate


class UserRepository(BaseRepository[UserAccount, UserCreate, UserUpdate]):
    def __init__(self):
        super().__init__(UserAccount)

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[UserAccount]:
        result = await db.execute(select(UserAccount).where(UserAccount.username == username))
        return result.scalar_one_or_none()

    async def search(
        self, db: AsyncSession, query: Optional[str] = None, offset: int = 0, limit: int = 50
    ) -> Sequence[UserAccount]:
        stmt = select(UserAccount).order_by(UserAccount.created_at.desc())
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    UserAccount.username.ilike(pattern),
                    UserAccount.phone.ilike(pattern),
                    UserAccount.email.ilike(pattern),
                )
            )
        result = await db.execute(stmt.offset(offset).limit(limit))
        return result.scalars().all()


user_repo = UserRepository()
