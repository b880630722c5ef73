from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boq_extraction.database.models import MasterMaterial, MaterialCategory
from boq_extraction.schemas.extraction import CatalogEntry, CategoryEntry


class ReferenceDataRepository:
    """Read-only access to the category registry and material catalog.

    Results are returned as frozen snapshots so a run never sees later edits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_categories(self) -> list[CategoryEntry]:
        result = await self.session.execute(select(MaterialCategory).order_by(MaterialCategory.code))
        return [
            CategoryEntry(id=row.id, code=row.code, name=row.name, description=row.description)
            for row in result.scalars().all()
        ]

    async def list_catalog(self) -> list[CatalogEntry]:
        result = await self.session.execute(select(MasterMaterial).order_by(MasterMaterial.code))
        return [
            CatalogEntry(
                id=row.id,
                code=row.code,
                name=row.name,
                category_id=row.category_id,
                standard_supply_cost=row.standard_supply_cost,
                standard_install_cost=row.standard_install_cost,
                unit=row.unit,
            )
            for row in result.scalars().all()
        ]
