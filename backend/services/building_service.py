"""
Building data access for the audit pipeline

Every lookup is scoped by building id. Each method that writes commits its
own unit of work; there is no transaction spanning pipeline steps.
"""

from typing import Optional, List, Dict, Any, Iterable
import logging

from sqlmodel import select
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.db_models import (
    Building, Room, Equipment, AuditFile, OCRData, Audit, DetailedReport, utc_now,
)
from models.enums import FileStatus
from services.error_types import NotFoundError, PersistenceError
from services.room_parser import dedupe_rooms_by_name

logger = logging.getLogger(__name__)

ROOM_FIELDS = ("name", "area", "room_type", "windows", "lighting_type", "num_fixtures", "ac_type", "ac_size")
EQUIPMENT_FIELDS = (
    "name", "category", "sub_type", "rated_power", "efficiency", "operating_hours",
    "operating_days", "load_factor", "condition", "age", "control_system",
    "maintenance_frequency", "energy_metered", "iot_connected", "notes",
)


async def _commit(session: AsyncSession, what: str) -> None:
    """Commit or raise PersistenceError; only the current unit is rolled back"""
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Failed to persist {what}: {e}")
        raise PersistenceError(f"Failed to persist {what}: {e}")


class BuildingService:
    """Database-backed access to buildings and everything they own"""

    @staticmethod
    async def create_building(data: Dict[str, Any], session: AsyncSession) -> Building:
        building = Building(**data)
        session.add(building)
        await _commit(session, "building")
        await session.refresh(building)
        logger.info(f"Created building {building.id} ({building.type}, {building.area} m²)")
        return building

    @staticmethod
    async def get_building(building_id: str, session: AsyncSession) -> Building:
        """Get building by ID or raise NotFoundError"""
        building = await session.get(Building, building_id)
        if building is None:
            raise NotFoundError(f"Building {building_id} not found", {"building_id": building_id})
        return building

    # Rooms

    @staticmethod
    async def list_rooms(building_id: str, session: AsyncSession) -> List[Room]:
        result = await session.execute(
            select(Room).where(Room.building_id == building_id).order_by(Room.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def rooms_for_editing(building_id: str, session: AsyncSession) -> List[Room]:
        """Rooms with area > 0, first occurrence of each name"""
        rooms = await BuildingService.list_rooms(building_id, session)
        return dedupe_rooms_by_name(rooms)

    @staticmethod
    async def replace_rooms(building_id: str, rooms: Iterable[Dict[str, Any]],
                            session: AsyncSession) -> List[Room]:
        """
        Replace the building's rooms in one commit.

        Rows with a non-positive area are skipped. Replacing (instead of
        appending) makes a retried step converge on the same room set.
        """
        await session.execute(delete(Room).where(Room.building_id == building_id))

        created = []
        for data in rooms:
            if (data.get("area") or 0) <= 0:
                continue
            room = Room(
                building_id=building_id,
                **{k: data[k] for k in ROOM_FIELDS if k in data and data[k] is not None},
                room_data=data.get("room_data"),
            )
            session.add(room)
            created.append(room)

        await _commit(session, f"rooms for building {building_id}")
        for room in created:
            await session.refresh(room)
        logger.info(f"Stored {len(created)} rooms for building {building_id}")
        return created

    # Equipment

    @staticmethod
    async def list_equipment(building_id: str, session: AsyncSession) -> List[Equipment]:
        result = await session.execute(
            select(Equipment).where(Equipment.building_id == building_id).order_by(Equipment.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def replace_equipment(building_id: str, equipment: Iterable[Dict[str, Any]],
                                session: AsyncSession) -> List[Equipment]:
        await session.execute(delete(Equipment).where(Equipment.building_id == building_id))

        created = []
        for data in equipment:
            row = Equipment(
                building_id=building_id,
                room_name=data.get("location") or data.get("room_name"),
                **{k: data[k] for k in EQUIPMENT_FIELDS if k in data and data[k] is not None},
            )
            session.add(row)
            created.append(row)

        await _commit(session, f"equipment for building {building_id}")
        for row in created:
            await session.refresh(row)
        return created

    # Files and OCR

    @staticmethod
    async def create_audit_file(building_id: str, file_url: str, file_name: str, file_type: str,
                                file_size: int, file_role: str, session: AsyncSession) -> AuditFile:
        audit_file = AuditFile(
            building_id=building_id,
            file_url=file_url,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            file_role=file_role,
            processing_status=FileStatus.pending,
        )
        session.add(audit_file)
        await _commit(session, f"audit file {file_name}")
        await session.refresh(audit_file)
        return audit_file

    @staticmethod
    async def record_ocr(audit_file: AuditFile, raw_text: str, processed: Dict[str, Any],
                         meta: Dict[str, Any], session: AsyncSession) -> OCRData:
        """Store OCR output and mark the file processed"""
        ocr = OCRData(
            building_id=audit_file.building_id,
            file_id=audit_file.id,
            raw_text=raw_text,
            processed_text=processed,
            meta=meta,
        )
        session.add(ocr)
        await session.flush()

        audit_file.ocr_data_id = ocr.id
        audit_file.ocr_text = raw_text
        audit_file.extracted_data = processed
        audit_file.processing_status = FileStatus.processed
        session.add(audit_file)

        await _commit(session, f"OCR data for {audit_file.file_name}")
        await session.refresh(ocr)
        return ocr

    @staticmethod
    async def mark_file_failed(audit_file: AuditFile, error: str, session: AsyncSession) -> None:
        audit_file.processing_status = FileStatus.failed
        audit_file.error = error[:2000]
        session.add(audit_file)
        await _commit(session, f"status of {audit_file.file_name}")

    @staticmethod
    async def list_files(building_id: str, session: AsyncSession) -> List[AuditFile]:
        result = await session.execute(
            select(AuditFile).where(AuditFile.building_id == building_id).order_by(AuditFile.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_ocr(building_id: str, session: AsyncSession) -> List[OCRData]:
        result = await session.execute(
            select(OCRData)
            .where(OCRData.building_id == building_id)
            .order_by(OCRData.created_at.desc(), OCRData.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def latest_floor_plan_ocr(building_id: str, session: AsyncSession) -> Optional[OCRData]:
        """Most recent floor-plan OCR record of this building"""
        for record in await BuildingService.list_ocr(building_id, session):
            if (record.meta or {}).get("is_floor_plan"):
                return record
        return None

    # Audits

    @staticmethod
    async def get_audit(building_id: str, audit_type: str, session: AsyncSession) -> Optional[Audit]:
        result = await session.execute(
            select(Audit).where(Audit.building_id == building_id, Audit.type == audit_type)
        )
        return result.scalars().first()

    @staticmethod
    async def list_audits(building_id: str, session: AsyncSession) -> List[Audit]:
        result = await session.execute(
            select(Audit)
            .where(Audit.building_id == building_id)
            .order_by(Audit.updated_at.desc(), Audit.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_latest_audit(building_id: str, session: AsyncSession) -> Optional[Audit]:
        audits = await BuildingService.list_audits(building_id, session)
        return audits[0] if audits else None

    @staticmethod
    async def upsert_audit(building_id: str, audit_type: str, fields: Dict[str, Any],
                           session: AsyncSession) -> Audit:
        """
        Create or update the single audit of (building, type). Last write wins.

        A concurrent insert that hits the unique constraint is retried as an update.
        """
        for attempt in range(2):
            audit = await BuildingService.get_audit(building_id, audit_type, session)
            if audit is None:
                audit = Audit(building_id=building_id, type=audit_type)
            for key, value in fields.items():
                setattr(audit, key, value)
            audit.updated_at = utc_now()
            session.add(audit)
            try:
                await _commit(session, f"{audit_type} audit for building {building_id}")
            except IntegrityError as e:
                if attempt == 0:
                    logger.warning(f"Concurrent {audit_type} audit insert for {building_id}; retrying as update")
                    continue
                raise PersistenceError(f"Failed to persist {audit_type} audit: {e}")
            await session.refresh(audit)
            logger.info(f"Upserted {audit_type} audit {audit.id} for building {building_id}")
            return audit
        raise PersistenceError(f"Failed to persist {audit_type} audit for building {building_id}")

    # Level III reports

    @staticmethod
    async def get_detailed_report(building_id: str, session: AsyncSession) -> Optional[DetailedReport]:
        result = await session.execute(
            select(DetailedReport).where(DetailedReport.building_id == building_id)
        )
        return result.scalars().first()

    @staticmethod
    async def save_detailed_report(building_id: str, content: Dict[str, Any], audit_id: Optional[int],
                                   session: AsyncSession) -> DetailedReport:
        report = await BuildingService.get_detailed_report(building_id, session)
        if report is None:
            report = DetailedReport(building_id=building_id)
        report.content = content
        report.audit_id = audit_id
        report.generated_at = utc_now()
        session.add(report)
        await _commit(session, f"detailed report for building {building_id}")
        await session.refresh(report)
        return report

    @staticmethod
    async def get_building_graph(building_id: str, session: AsyncSession) -> Dict[str, Any]:
        """Building with rooms, equipment, files, OCR records and audits"""
        building = await BuildingService.get_building(building_id, session)
        return {
            "building": building,
            "rooms": await BuildingService.list_rooms(building_id, session),
            "equipment": await BuildingService.list_equipment(building_id, session),
            "files": await BuildingService.list_files(building_id, session),
            "ocr": await BuildingService.list_ocr(building_id, session),
            "audits": await BuildingService.list_audits(building_id, session),
        }


building_service = BuildingService()
