"""
Write normalized entities by natural key (idempotent upsert).
"""

from typing import Type

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import UpsertFailure
from ingestion.results import RecordOutcome
from models.base import Base
from schemas.normalized import NormalizedEntity
import logging

logger = logging.getLogger(__name__)


class UpsertEngine:
    """
    Create or fully replace one entity per call.

    Ensures:
    - No duplicate rows on repeated runs (lookup by natural key)
    - Every field of the entity schema is overwritten, None included;
      columns outside the schema are left alone
    - Each record is committed on its own; a rejected write is rolled back
      without touching records already written

    The lookup and the write are separate statements. Within a process the
    per-dataset lock keeps them from interleaving; across processes the
    unique constraint on the natural key rejects the second insert, which
    surfaces here as an UpsertFailure for that record.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def upsert(self, model: Type[Base], entity: NormalizedEntity) -> RecordOutcome:
        """
        Returns:
            RecordOutcome.CREATED or RecordOutcome.UPDATED

        Raises:
            UpsertFailure: when the store rejects the write
        """
        key_field = entity.natural_key
        key = entity.key_value()
        values = entity.dict()

        try:
            result = await self.db.execute(
                select(model).where(getattr(model, key_field) == key)
            )
            existing = result.scalar_one_or_none()

            if existing is not None:
                for field_name, value in values.items():
                    setattr(existing, field_name, value)
                outcome = RecordOutcome.UPDATED
            else:
                self.db.add(model(**values))
                outcome = RecordOutcome.CREATED

            await self.db.commit()
            return outcome

        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpsertFailure(
                f"Could not write {model.__tablename__} record",
                context={"table_name": model.__tablename__, "natural_key": key},
                original_exception=e
            )
