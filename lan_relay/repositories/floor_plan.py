"""
Floor-Plan Repository

Reads and writes sections and tables. Floor-plan changes are not broadcast
to POS terminals; they pick them up on their next /api/floor-plan read.
"""

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lan_relay.core.exceptions import DuplicateEntityError, PersistenceError
from lan_relay.models import DiningTable, Section, TableStatus
from lan_relay.schemas import TableCreate

logger = logging.getLogger(__name__)


class FloorPlanRepository:
    """Section and table access on a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # SECTIONS
    # =========================================================================

    async def list_sections(self) -> Sequence[Section]:
        """All sections in storage order."""
        result = await self.session.execute(select(Section))
        return result.scalars().all()

    async def insert_section(self, section_id: str, name: str) -> Section:
        """
        Create an active section.

        Raises:
            DuplicateEntityError: a section with this id already exists
        """
        section = Section(id=section_id, name=name, is_active=True)
        await self._insert(section, "Section", section_id)
        logger.info(f"Section {section_id} ({name}) created")
        return section

    # =========================================================================
    # TABLES
    # =========================================================================

    async def list_tables(self) -> Sequence[DiningTable]:
        result = await self.session.execute(select(DiningTable))
        return result.scalars().all()

    async def insert_table(self, table: TableCreate) -> DiningTable:
        """
        Create a table in an existing or future section.

        The section reference is not checked.

        Raises:
            DuplicateEntityError: a table with this id already exists
        """
        row = DiningTable(
            id=table.id,
            section_id=table.section_id,
            table_number=table.table_number,
            capacity=table.capacity,
            qr_code_url=table.qr_code_url,
            status=TableStatus(table.status.value),
            assigned_staff_id=table.assigned_staff_id,
            current_order_id=table.current_order_id,
            last_active_at=table.last_active_at,
        )
        await self._insert(row, "Table", table.id)
        logger.info(f"Table {table.id} (#{table.table_number}) created in section {table.section_id}")
        return row

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def snapshot(self) -> tuple[Sequence[Section], Sequence[DiningTable]]:
        """
        Sections and tables as of a single point in time.

        Both reads share one transaction, so a table committed between them
        cannot show up without its section.
        """
        if self.session.in_transaction():
            return await self._read_floor_plan()
        async with self.session.begin():
            return await self._read_floor_plan()

    async def _read_floor_plan(self) -> tuple[Sequence[Section], Sequence[DiningTable]]:
        sections = await self.list_sections()
        tables = await self.list_tables()
        return sections, tables

    async def _insert(self, row, entity: str, entity_id: str) -> None:
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Rejected duplicate {entity.lower()} {entity_id}")
            raise DuplicateEntityError(entity, entity_id) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Could not store {entity.lower()} {entity_id}: {e}")
            raise PersistenceError(f"{entity} could not be stored", detail=str(e)) from e
