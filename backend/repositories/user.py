"""
User repository implementation.
"""

import asyncio

from pymongo.database import Database

from models.user import User
from repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User entities."""

    def __init__(self, database: Database):
        super().__init__(database, "users", User)

    async def ensure_user(self, user: User) -> User:
        """
        Insert the user if no user has its id.

        Args:
            user: User to seed

        Returns:
            Stored user
        """
        def _upsert():
            self.collection.update_one(
                {"_id": user.id},
                {"$setOnInsert": user.model_dump(by_alias=True, exclude={"id"})},
                upsert=True,
            )

        await asyncio.to_thread(_upsert)
        return await self.find_by_id(user.id)
