"""
Account repository.

The identity provider issues the tokens; a local ``users`` row is provisioned
the first time a caller writes, so owner foreign keys always resolve.
"""

from uuid import UUID

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.auth.models import User
from chatcrm.shared.database import dialect_name


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def ensure(self, user_id: UUID) -> bool:
        """Insert the account row unless it already exists.

        Returns:
            True if a row was created.
        """
        insert = pg_insert if dialect_name(self._session) == "postgresql" else sqlite_insert
        stmt = (
            insert(User)
            .values(id=user_id)
            .on_conflict_do_nothing(index_elements=["id"])
            .returning(User.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
