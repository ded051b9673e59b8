from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, DateTime, UniqueConstraint
from typing import Optional, List
from datetime import datetime, timezone
import uuid

from models.enums import AuditStatus, FileStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class Building(SQLModel, table=True):
    __tablename__ = "buildings"

    id: str = Field(default_factory=_uuid, primary_key=True)
    name: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    type: str = Field(default="residential", max_length=50)
    customer_type: Optional[str] = Field(default=None, max_length=50)
    area: float = Field(default=0.0, ge=0)  # m²
    construction_year: Optional[int] = Field(default=None)
    rooms_count: Optional[int] = Field(default=None)
    residents: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", index=True)
    name: str = Field(max_length=255)
    area: float = Field(gt=0)
    room_type: Optional[str] = Field(default=None, max_length=100)
    windows: int = Field(default=0)
    lighting_type: Optional[str] = Field(default=None, max_length=50)
    num_fixtures: int = Field(default=0)
    ac_type: Optional[str] = Field(default=None, max_length=50)
    ac_size: float = Field(default=0.0)  # BTU/h in thousands, converted with 0.293
    # dimensions, extracted_from_ocr, is_default, ocr_data_id
    room_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Equipment(SQLModel, table=True):
    __tablename__ = "equipment"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", index=True)
    room_name: Optional[str] = Field(default=None, max_length=255)  # location by name, not id
    name: str = Field(default="", max_length=255)
    category: str = Field(max_length=100)
    sub_type: str = Field(default="", max_length=100)
    rated_power: float = Field(default=0.0)  # kW
    efficiency: float = Field(default=0.0)
    operating_hours: float = Field(default=0.0)  # hours/day
    operating_days: float = Field(default=0.0)  # days/week
    load_factor: str = Field(default="Medium", max_length=50)
    condition: Optional[str] = Field(default=None, max_length=50)
    age: float = Field(default=0.0)
    control_system: Optional[str] = Field(default=None, max_length=50)
    maintenance_frequency: Optional[str] = Field(default=None, max_length=50)
    energy_metered: bool = Field(default=False)
    iot_connected: bool = Field(default=False)
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class OCRData(SQLModel, table=True):
    __tablename__ = "ocr_data"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", index=True)
    file_id: Optional[int] = Field(default=None, foreign_key="audit_files.id")
    raw_text: str = Field(default="")
    processed_text: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    # "metadata" is reserved on declarative classes
    meta: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)


class AuditFile(SQLModel, table=True):
    __tablename__ = "audit_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", index=True)
    file_url: str = Field(max_length=1024)
    file_name: str = Field(max_length=255)
    file_type: str = Field(max_length=100)
    file_size: Optional[int] = Field(default=None)
    file_role: str = Field(default="bill", max_length=20)
    processing_status: FileStatus = Field(default=FileStatus.pending)
    ocr_data_id: Optional[int] = Field(default=None)
    ocr_text: Optional[str] = Field(default=None)
    extracted_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    error: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Audit(SQLModel, table=True):
    __tablename__ = "audits"
    __table_args__ = (UniqueConstraint("building_id", "type", name="uq_audits_building_type"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", index=True)
    type: str = Field(max_length=20)
    level: str = Field(default="I", max_length=5)
    status: AuditStatus = Field(default=AuditStatus.PENDING)
    findings: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    recommendations: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    key_metrics: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    executive_summary: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    # Unmodified AI payload for forensic replay
    ai_raw: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)


class DetailedReport(SQLModel, table=True):
    __tablename__ = "detailed_reports"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: str = Field(foreign_key="buildings.id", unique=True, index=True)
    audit_id: Optional[int] = Field(default=None, foreign_key="audits.id")
    content: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    generated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Translation(SQLModel, table=True):
    __tablename__ = "translations"
    __table_args__ = (UniqueConstraint("key", "locale", name="uq_translations_key_locale"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, max_length=500)
    value: str
    locale: str = Field(index=True, max_length=10)
    type: str = Field(default="text", max_length=50)
