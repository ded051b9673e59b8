"""
API request/response models for the energy audit endpoints
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, field_validator

from models.enums import AuditType, BuildingType


class BuildingCreate(BaseModel):
    """Intake form payload"""
    name: Optional[str] = None
    address: Optional[str] = None
    type: BuildingType = BuildingType.residential
    customer_type: Optional[str] = None
    area: float = Field(..., gt=0, description="Floor area in m²")
    construction_year: Optional[int] = Field(default=None, ge=1800, le=2100)
    rooms_count: Optional[int] = Field(default=None, ge=0)
    residents: Optional[int] = Field(default=None, ge=0)


class BuildingResponse(BaseModel):
    id: str
    name: Optional[str] = None
    address: Optional[str] = None
    type: str
    customer_type: Optional[str] = None
    area: float
    construction_year: Optional[int] = None
    rooms_count: Optional[int] = None
    residents: Optional[int] = None
    audit_level: str
    created_at: datetime


class RoomPayload(BaseModel):
    """Room as edited in the room assessment step"""
    name: str
    area: float = Field(..., gt=0)
    room_type: Optional[str] = None
    windows: int = 0
    lighting_type: Optional[str] = None
    num_fixtures: int = 0
    ac_type: Optional[str] = None
    ac_size: float = 0.0
    dimensions: Optional[Dict[str, Any]] = None
    is_default: bool = False

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Room name must not be blank")
        return v.strip()


class EquipmentPayload(BaseModel):
    """Equipment collected in the detailed audit step"""
    name: str = ""
    category: str
    sub_type: str = Field(default="", alias="subType")
    location: Optional[str] = None
    rated_power: float = Field(..., ge=0, alias="ratedPower")
    efficiency: float = Field(default=0.0, ge=0)
    operating_hours: float = Field(..., ge=0, le=24, alias="operatingHours")
    operating_days: float = Field(..., ge=0, le=7, alias="operatingDays")
    load_factor: str = Field(default="Medium", alias="loadFactor")
    condition: Optional[str] = None
    age: float = Field(default=0.0, ge=0)
    control_system: Optional[str] = Field(default=None, alias="controlSystem")
    maintenance_frequency: Optional[str] = Field(default=None, alias="maintenanceFrequency")
    energy_metered: bool = Field(default=False, alias="energyMetered")
    iot_connected: bool = Field(default=False, alias="iotConnected")
    notes: Optional[str] = None

    model_config = {"populate_by_name": True}


class DetailedAuditRequest(BaseModel):
    equipment: List[EquipmentPayload] = Field(..., min_length=1)
    type: AuditType = AuditType.detailed

    @field_validator('type')
    @classmethod
    def only_detailed(cls, value: AuditType) -> AuditType:
        if value != AuditType.detailed:
            raise ValueError("equipment submissions create detailed audits only")
        return value


class AuditResponse(BaseModel):
    id: int
    building_id: str
    type: str
    level: str
    status: str
    findings: Dict[str, Any] = {}
    recommendations: List[Dict[str, Any]] = []
    key_metrics: Dict[str, Any] = {}
    executive_summary: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime


class InitialAuditResponse(BaseModel):
    audit_id: int
    audit_level: str
    report: Dict[str, Any]
    rooms: List[Dict[str, Any]]
    processing_errors: List[str] = []
    no_room_data_found: bool = False


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


class ChatResponse(BaseModel):
    message: ChatMessage


class TranslateRequest(BaseModel):
    texts: List[str]
