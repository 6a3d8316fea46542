"""Service repository: read-only catalogue lookups."""

from typing import Optional

from salon_booking.db.base import Service as DbService
from salon_booking.domain.entities import Service as DomainService
from salon_booking.domain.interfaces import IServiceReader


class ServiceRepository(IServiceReader):
    """Repository for Service reads, scoped by owner."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, owner_id: int, service_id: int) -> Optional[DomainService]:
        db_service = (
            self.db.query(DbService).filter_by(id=service_id, owner_id=owner_id).first()
        )
        return self._to_domain(db_service) if db_service else None

    def get_service_duration(self, owner_id: int, service_id: int) -> Optional[int]:
        service = self.get_by_id(owner_id, service_id)
        return service.duration_minutes if service else None

    def _to_domain(self, db_service: DbService) -> DomainService:
        return DomainService(
            id=db_service.id,
            owner_id=db_service.owner_id,
            name=db_service.name,
            duration_minutes=db_service.duration_minutes,
            price_cents=db_service.price_cents,
        )
