"""Client repository implementation following SOLID principles."""

from sqlalchemy import select

from salon_booking.db.base import Client as DbClient
from salon_booking.domain.interfaces import IClientReader


class ClientRepository(IClientReader):
    """Repository for Client lookups, scoped by owner."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def exists(self, owner_id: int, client_id: int) -> bool:
        stmt = select(DbClient.id).where(
            DbClient.id == client_id, DbClient.owner_id == owner_id
        )
        return self.db.execute(stmt).first() is not None
