"""Base repository for tenant-owned records."""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared persistence for models carrying `id` and `tenant_id`.

    Lookups by id always go through the owning tenant, so one tenant can
    never read or change another's record.
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]):
        self.session = session
        self.model = model

    async def get_for_tenant(self, tenant_id: UUID, record_id: UUID) -> ModelT | None:
        """Get a record ensuring it belongs to the tenant."""
        stmt = select(self.model).where(
            self.model.id == record_id,
            self.model.tenant_id == tenant_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count(self, tenant_id: UUID | None = None) -> int:
        """Count records, for one tenant or across all of them."""
        stmt = select(func.count()).select_from(self.model)
        if tenant_id is not None:
            stmt = stmt.where(self.model.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def create(self, **kwargs) -> ModelT:
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelT, **changes) -> ModelT:
        """Apply changes to mapped attributes; ownership fields are never rewritten."""
        for key, value in changes.items():
            if key in ("id", "tenant_id"):
                continue
            if hasattr(instance, key):
                setattr(instance, key, value)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance

    async def delete(self, instance: ModelT) -> None:
        await self.session.delete(instance)
        await self.session.commit()
