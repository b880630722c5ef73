import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.database.models import ExtractedItemRecord
from boq_extraction.repositories.base_repository import BaseRepository
from boq_extraction.schemas.extraction import ExtractedItem


class ExtractedItemRepository(BaseRepository[ExtractedItemRecord]):
    """Repository for persisted BOQ line items.

    Batches are flushed without committing so a whole run can be committed or
    rolled back as one unit.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, ExtractedItemRecord)

    @staticmethod
    def to_record(job_id: uuid.UUID, item: ExtractedItem) -> ExtractedItemRecord:
        return ExtractedItemRecord(
            job_id=job_id,
            row_number=item.row_number,
            bill_number=item.bill_number,
            bill_name=item.bill_name,
            section_code=item.section_code,
            section_name=item.section_name,
            item_code=item.item_code,
            item_description=item.item_description,
            quantity=item.quantity,
            unit=item.unit,
            supply_rate=item.supply_rate,
            install_rate=item.install_rate,
            total_rate=item.total_rate,
            amount=item.amount,
            supply_cost=item.supply_cost,
            install_cost=item.install_cost,
            prime_cost=item.prime_cost,
            profit_percentage=item.profit_percentage,
            is_rate_only=item.is_rate_only,
            suggested_category_id=item.suggested_category_id,
            suggested_category_name=item.suggested_category_name,
            matched_material_id=item.matched_material_id,
            match_confidence=item.match_confidence,
            math_validated=item.math_validated,
            raw_data=item.raw_data,
            extraction_notes=item.notes_text,
            review_status=item.review_status,
        )

    async def add_batch(self, job_id: uuid.UUID, items: Sequence[ExtractedItem]) -> int:
        """Stage one batch of items and flush it."""
        records = [self.to_record(job_id, item) for item in items]
        self.session.add_all(records)
        await self.session.flush()
        return len(records)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def list_for_job(self, job_id: uuid.UUID, limit: int = 100, offset: int = 0) -> list[ExtractedItemRecord]:
        try:
            query = (
                select(ExtractedItemRecord)
                .where(ExtractedItemRecord.job_id == job_id)
                .order_by(ExtractedItemRecord.row_number)
                .offset(offset)
                .limit(limit)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing items for job {job_id}: {str(e)}", exc_info=True)
            raise
