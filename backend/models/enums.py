"""
Enums for energy audit models to ensure type safety and consistency
"""

from enum import Enum


class BuildingType(str, Enum):
    """Building use types collected at intake"""
    residential = 'residential'
    commercial = 'commercial'
    industrial = 'industrial'
    educational = 'educational'
    healthcare = 'healthcare'


class AuditType(str, Enum):
    """Audit record kinds; one live record per (building, type)"""
    initial = 'initial'
    detailed = 'detailed'


class AuditLevel(str, Enum):
    """ASHRAE-style audit levels"""
    I = 'I'
    II = 'II'
    III = 'III'


class AuditStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileRole(str, Enum):
    bill = 'bill'
    floor_plan = 'floor_plan'


class FileStatus(str, Enum):
    pending = 'pending'
    processed = 'processed'
    failed = 'failed'


class Priority(str, Enum):
    High = 'High'
    Medium = 'Medium'
    Low = 'Low'


class LoadFactor(str, Enum):
    """Equipment load band; numeric multipliers live in services.equipment_metrics"""
    Low = 'Low'
    Medium = 'Medium'
    High = 'High'


class EquipmentCondition(str, Enum):
    Excellent = 'Excellent'
    Good = 'Good'
    Fair = 'Fair'
    Poor = 'Poor'
    Critical = 'Critical'


class ControlSystem(str, Enum):
    Manual = 'Manual'
    ProgrammableThermostat = 'Programmable Thermostat'
    BMSIntegration = 'BMS Integration'
    SmartControls = 'Smart Controls'
    NoControl = 'None'


class MaintenanceFrequency(str, Enum):
    Monthly = 'Monthly'
    Quarterly = 'Quarterly'
    SemiAnnual = 'Semi-Annual'
    Annual = 'Annual'
    AsNeeded = 'As Needed'
