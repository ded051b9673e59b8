"""
Audit orchestration for the three audit levels

Level I turns bills and a floor plan into an initial report and a room list,
Level II turns collected equipment into a detailed audit, and Level III
produces the cached investment-grade analysis.
"""

import asyncio
import weakref
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Union

from sqlalchemy.ext.asyncio import AsyncSession

from models.enums import AuditLevel, AuditStatus, AuditType, FileRole
from services.building_service import BuildingService
from services.document_store import DocumentStore, get_document_store, validate_document
from services.ocr_service import OCRService
from services.llm_service import LLMService, get_llm_service
from services.strict_json_parser import StrictJSONParser
from services.analysis_normalizer import (
    REQUIRED_SECTIONS, normalize_analysis, normalize_recommendations, normalize_level_three,
)
from services.equipment_metrics import enrich_equipment, building_metrics
from services.room_parser import (
    parse_room_text, is_floor_plan, usable_rooms, synthesize_rooms, ParsedRoom,
)
from services.error_types import (
    EnergyAuditError, ValidationError, ProcessingError, NotFoundError,
)
from utils.logging_utils import log_operation
from utils.json_utils import dumps

logger = logging.getLogger(__name__)

LEVEL_II_AREA = 5000
LEVEL_III_AREA = 10000

NO_BILLS_MESSAGE = "No electricity bills could be processed. Please check the files and try again."

INITIAL_REPORT_PROMPT = """As an expert energy auditor, analyze this building data and provide a structured JSON response with the following format:
{{
  "energyConsumption": {{
    "annual": number (kWh),
    "peak": number (kW),
    "average": number (kWh/month)
  }},
  "carbonFootprint": number (tCO2e/year),
  "costMetrics": {{
    "annual": number (USD),
    "perSquareMeter": number (USD/m²)
  }},
  "recommendations": [
    {{
      "title": string,
      "description": string,
      "potentialSavings": number (USD/year),
      "priority": "high" | "medium" | "low"
    }}
  ]
}}

Building Details:
- Floor Area: {floor_area} m²
- Number of Rooms: {rooms}
- Number of Residents: {residents}

Electricity Bills Analysis:
{bills}

Floor Plan Analysis:
{floor_plan}"""

DETAILED_AUDIT_PROMPT = """You are an expert energy auditor conducting a {audit_type} audit. Analyze this building data and provide a comprehensive energy assessment.

CONTEXT:
{context}

INSTRUCTIONS:
1. Analyze the provided data including building details, equipment information, and calculated metrics
2. Consider the relationships between different building systems
3. Prioritize recommendations based on ROI, implementation complexity, and energy savings potential
4. Include specific, actionable recommendations with quantified benefits
5. Provide detailed findings supported by the data

REQUIRED: Return ONLY a JSON object with the following structure (no additional text or markdown):
{{
  "findings": {{
    "buildingOverview": {{ "description": "", "metrics": {{}} }},
    "equipmentAnalysis": {{ "description": "", "keyIssues": [] }},
    "energyConsumption": {{ "description": "", "patterns": [] }},
    "maintenanceStatus": {{ "description": "", "issues": [] }}
  }},
  "recommendations": [
    {{
      "category": "",
      "title": "",
      "description": "",
      "implementation": "",
      "savings": {{ "energy": 0, "cost": 0, "carbon": 0 }},
      "investment": 0,
      "roi": 0,
      "priority": "High|Medium|Low"
    }}
  ],
  "keyMetrics": {{
    "totalEnergyConsumption": 0,
    "potentialSavings": 0,
    "carbonReduction": 0,
    "averageROI": 0,
    "implementationCost": 0
  }},
  "executiveSummary": {{
    "overview": "",
    "keyFindings": [],
    "potentialImpact": {{}},
    "nextSteps": []
  }}
}}"""

LEVEL_THREE_PROMPT = """As an expert ASHRAE Level II energy auditor, analyze this building's energy audit data and provide a detailed assessment.
The analysis must be data-driven and based on the actual measurements provided.

Building Data:
{context}

Return a pure JSON response in this exact format:
{{
  "executive_summary": {{
    "annual_savings": number,
    "roi_percentage": number,
    "payback_months": number,
    "co2_reduction": number
  }},
  "energy_performance": {{
    "annual_consumption": number,
    "peak_demand": number,
    "carbon_footprint": number,
    "energy_cost": number
  }},
  "recommendations": [
    {{
      "title": string,
      "description": string,
      "savings": number,
      "cost": number,
      "roi": number,
      "priority": "High" | "Medium" | "Low"
    }}
  ]
}}

CRITICAL: Return ONLY the JSON object, no other text."""


@dataclass
class IncomingFile:
    """An uploaded document before it reaches the store"""
    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class InitialAuditResult:
    audit_id: int
    audit_level: str
    report: Dict[str, Any]
    rooms: List[Dict[str, Any]]
    processing_errors: List[str] = field(default_factory=list)
    no_room_data_found: bool = False


@dataclass
class DetailedAuditResult:
    audit_id: int
    audit_level: str
    analysis: Dict[str, Any]
    metrics: Dict[str, Any]
    equipment: List[Dict[str, Any]]


def classify_audit_level(area: float) -> AuditLevel:
    """Area above 10000 m² is level III, above 5000 m² level II"""
    area = area or 0
    if area > LEVEL_III_AREA:
        return AuditLevel.III
    if area > LEVEL_II_AREA:
        return AuditLevel.II
    return AuditLevel.I


def validate_initial_files(bills: List[IncomingFile], floor_plan: Optional[IncomingFile]) -> None:
    """Reject the submission before any upload, OCR or LLM call"""
    if not bills:
        raise ValidationError("Please upload at least one electricity bill.")
    if floor_plan is None:
        raise ValidationError("Please upload a floor plan.")
    for incoming in [*bills, floor_plan]:
        validate_document(incoming.file_name, incoming.size, incoming.content_type)


def _error_message(error: BaseException) -> str:
    if isinstance(error, EnergyAuditError):
        return error.message
    return str(error) or type(error).__name__


def _room_rows(rooms: List[Union[ParsedRoom, Dict[str, Any]]], ocr_data_id: Optional[int]) -> List[Dict[str, Any]]:
    rows = []
    for room in rooms:
        data = room if isinstance(room, dict) else room.to_dict()
        rows.append({
            "name": data["name"].strip(),
            "area": data["area"],
            "room_data": {
                "dimensions": data.get("dimensions"),
                "extracted_from_ocr": True,
                "ocr_data_id": ocr_data_id,
            },
        })
    return rows


def _room_view(room) -> Dict[str, Any]:
    room_data = room.room_data or {}
    return {
        "id": room.id,
        "name": room.name,
        "area": room.area,
        "dimensions": room_data.get("dimensions"),
        "is_default": bool(room_data.get("is_default")),
    }


class AuditOrchestrator:
    """Runs the audit levels against the store, OCR and LLM adapters"""

    def __init__(self, store: Optional[DocumentStore] = None, ocr: Optional[OCRService] = None,
                 llm: Optional[LLMService] = None):
        self.store = store or get_document_store()
        self.ocr = ocr or OCRService(fetcher=self.store.fetch)
        self.llm = llm or get_llm_service()
        # Entries live only while a submission holds or awaits the lock
        self._building_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def _lock_for(self, building_id: str) -> asyncio.Lock:
        lock = self._building_locks.get(building_id)
        if lock is None:
            lock = asyncio.Lock()
            self._building_locks[building_id] = lock
        return lock

    # Level I

    async def _ingest_files(self, building_id: str, files: List[tuple], session: AsyncSession,
                            failures: Dict[int, str]) -> Dict[int, Any]:
        """
        Upload and OCR every file concurrently, then record the outcomes.

        Network work runs under gather; database writes stay sequential on the
        one session. Returns {index: OCRData} for files that succeeded and fills
        failures with {index: message} for the rest.
        """
        uploads = await asyncio.gather(
            *(self.store.upload(f.data, f.content_type, f.file_name) for _, f in files),
            return_exceptions=True,
        )

        audit_files = {}
        for index, ((role, incoming), stored) in enumerate(zip(files, uploads)):
            if isinstance(stored, BaseException):
                if not isinstance(stored, Exception):
                    raise stored
                logger.error(f"Upload failed for {incoming.file_name}: {stored}")
                failures[index] = _error_message(stored)
                continue
            audit_files[index] = await BuildingService.create_audit_file(
                building_id, stored.url, incoming.file_name, incoming.content_type,
                stored.size, role.value, session,
            )

        indices = list(audit_files)
        ocr_results = await asyncio.gather(
            *(self.ocr.recognize(audit_files[i].file_url, audit_files[i].file_name) for i in indices),
            return_exceptions=True,
        )

        records = {}
        for index, result in zip(indices, ocr_results):
            role, incoming = files[index]
            audit_file = audit_files[index]
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                message = _error_message(result)
                logger.error(f"OCR failed for {incoming.file_name}: {message}")
                failures[index] = message
                await BuildingService.mark_file_failed(audit_file, message, session)
                continue

            text = result.full_text
            floor_plan = role == FileRole.floor_plan or is_floor_plan(incoming.file_name, text)
            if floor_plan:
                processed = {"type": "floor_plan", "rooms": [r.to_dict() for r in parse_room_text(text)]}
            else:
                processed = {"type": "bill"}
            meta = {
                "file_name": incoming.file_name,
                "file_type": incoming.content_type,
                "file_size": incoming.size,
                "file_role": role.value,
                "is_floor_plan": floor_plan,
            }
            records[index] = await BuildingService.record_ocr(audit_file, text, processed, meta, session)
        return records

    async def _rooms_from_floor_plan(self, building, session: AsyncSession) -> tuple:
        """Rooms from this building's latest floor-plan OCR, or equal-split defaults"""
        record = await BuildingService.latest_floor_plan_ocr(building.id, session)
        parsed = []
        if record is not None:
            parsed = [
                ParsedRoom(name=r.get("name", ""), area=r.get("area") or 0.0, dimensions=r.get("dimensions"))
                for r in (record.processed_text or {}).get("rooms", [])
                if isinstance(r, dict)
            ]
        found = usable_rooms(parsed)
        if found:
            return _room_rows(found, record.id), False

        logger.info(f"No room data found for building {building.id}; using {building.rooms_count or 1} default rooms")
        defaults = [
            {
                "name": room.name,
                "area": room.area,
                "room_data": {"dimensions": room.dimensions, "is_default": True},
            }
            for room in synthesize_rooms(building.area, building.rooms_count)
        ]
        return defaults, True

    async def run_initial_audit(self, building_id: str, bills: List[IncomingFile],
                                floor_plan: Optional[IncomingFile], session: AsyncSession) -> InitialAuditResult:
        """
        Level I: ingest documents, ask for the initial report and store rooms.

        Raises:
            ValidationError: missing or invalid files (before any I/O)
            NotFoundError: unknown building
            ProcessingError: no bill or the floor plan could not be processed
            InvalidAIResponseError: the report is not JSON
        """
        validate_initial_files(bills, floor_plan)

        step_context = {"building_id": building_id, "bills": len(bills)}
        with log_operation("initial_audit", step_context, logger) as outcome:
            building = await BuildingService.get_building(building_id, session)

            files = [(FileRole.bill, bill) for bill in bills] + [(FileRole.floor_plan, floor_plan)]
            failures: Dict[int, str] = {}
            records = await self._ingest_files(building_id, files, session, failures)
            processing_errors = [
                f"Failed to process {files[i][1].file_name}: {failures[i]}" for i in sorted(failures)
            ]

            bill_texts = [records[i].raw_text for i in range(len(bills)) if i in records]
            plan_record = records.get(len(bills))

            if not bill_texts:
                raise ProcessingError(NO_BILLS_MESSAGE, processing_errors)
            if plan_record is None:
                plan_error = failures.get(len(bills), "unknown error")
                raise ProcessingError(f"Failed to process floor plan: {plan_error}", processing_errors)

            prompt = INITIAL_REPORT_PROMPT.format(
                floor_area=building.area,
                rooms=building.rooms_count if building.rooms_count is not None else "",
                residents=building.residents if building.residents is not None else "",
                bills="\n\n".join(bill_texts),
                floor_plan=plan_record.raw_text,
            )
            content = await self.llm.complete_prompt(prompt)
            report = StrictJSONParser.parse_or_raise(content)

            room_rows, no_room_data_found = await self._rooms_from_floor_plan(building, session)
            rooms = await BuildingService.replace_rooms(building_id, room_rows, session)
            outcome["rooms"] = len(rooms)
            outcome["failed_files"] = len(failures)

            normalized = dict(report)
            normalized["recommendations"] = normalize_recommendations(report.get("recommendations"))
            level = classify_audit_level(building.area)

            audit = await BuildingService.upsert_audit(building_id, AuditType.initial.value, {
                "level": level.value,
                "status": AuditStatus.COMPLETED,
                "findings": {},
                "recommendations": normalized["recommendations"],
                "key_metrics": {
                    "energyConsumption": report.get("energyConsumption"),
                    "carbonFootprint": report.get("carbonFootprint"),
                    "costMetrics": report.get("costMetrics"),
                },
                "executive_summary": {},
                "ai_raw": report,
            }, session)

        return InitialAuditResult(
            audit_id=audit.id,
            audit_level=level.value,
            report=normalized,
            rooms=[_room_view(room) for room in rooms],
            processing_errors=processing_errors,
            no_room_data_found=no_room_data_found,
        )

    # Level II

    async def run_detailed_audit(self, building_id: str, equipment: List[Dict[str, Any]],
                                 session: AsyncSession, audit_type: str = AuditType.detailed.value) -> DetailedAuditResult:
        """
        Level II: store equipment, ask for the four-section analysis, upsert it.

        Submissions for one building are serialized in-process.

        Raises:
            NotFoundError: unknown building
            InvalidAIResponseError: the analysis is not JSON
            MissingSectionError: a required section is absent
        """
        if not equipment:
            raise ValidationError("At least one equipment item is required")
        if audit_type != AuditType.detailed.value:
            raise ValidationError(f"Equipment cannot be stored as a {audit_type} audit", {"type": audit_type})

        async with self._lock_for(building_id):
            step_context = {"building_id": building_id, "equipment": len(equipment)}
            with log_operation("detailed_audit", step_context, logger) as outcome:
                building = await BuildingService.get_building(building_id, session)
                await BuildingService.replace_equipment(building_id, equipment, session)

                enriched = [enrich_equipment(eq) for eq in equipment]
                metrics = building_metrics(enriched)

                slim = {
                    "building": {
                        "id": building.id,
                        "type": building.type,
                        "area": building.area,
                        "construction_year": building.construction_year,
                        "address": building.address,
                    },
                    "equipment": [
                        {
                            "type": eq.get("category"),
                            "subType": eq.get("sub_type"),
                            "efficiency": eq.get("efficiency"),
                            "age": eq.get("age"),
                            "condition": eq.get("condition"),
                            "annualEnergy": eq["annualEnergy"],
                            "savingsPotential": eq["savingsPotential"],
                        }
                        for eq in enriched
                    ],
                    "metrics": metrics,
                    "auditType": audit_type,
                }

                prompt = DETAILED_AUDIT_PROMPT.format(audit_type=audit_type, context=dumps(slim, indent=2))
                content = await self.llm.complete_prompt(prompt)
                parsed = StrictJSONParser.parse_or_raise(content)
                StrictJSONParser.require_sections(parsed, REQUIRED_SECTIONS)
                analysis = normalize_analysis(parsed)
                outcome["recommendations"] = len(analysis["recommendations"])
                level = classify_audit_level(building.area)

                audit = await BuildingService.upsert_audit(building_id, audit_type, {
                    "level": level.value,
                    "status": AuditStatus.COMPLETED,
                    "findings": analysis["findings"],
                    "recommendations": analysis["recommendations"],
                    "key_metrics": analysis["keyMetrics"],
                    "executive_summary": analysis["executiveSummary"],
                    "ai_raw": parsed,
                }, session)

        return DetailedAuditResult(
            audit_id=audit.id,
            audit_level=level.value,
            analysis=analysis,
            metrics=metrics,
            equipment=enriched,
        )

    # Level III

    async def generate_level_three_analysis(self, building_id: str, session: AsyncSession,
                                            force: bool = False) -> Dict[str, Any]:
        """Cached level III analysis; the LLM is only called when nothing is stored"""
        building = await BuildingService.get_building(building_id, session)

        if not force:
            cached = await BuildingService.get_detailed_report(building_id, session)
            if cached is not None and cached.content:
                logger.info(f"Using cached level III analysis for building {building_id}")
                return cached.content

        audit = await BuildingService.get_audit(building_id, AuditType.detailed.value, session)
        if audit is None:
            audit = await BuildingService.get_latest_audit(building_id, session)
        if audit is None:
            raise NotFoundError("No audit found for this building", {"building_id": building_id})

        with log_operation("level_three_analysis", {"building_id": building_id, "audit_id": audit.id}, logger):
            equipment = await BuildingService.list_equipment(building_id, session)
            context = {
                "buildingInfo": building.model_dump(),
                "energyData": {
                    "key_metrics": audit.key_metrics or {},
                    "recommendations": audit.recommendations or [],
                },
                "equipment": [enrich_equipment(eq.model_dump()) for eq in equipment],
            }

            content = await self.llm.complete_prompt(LEVEL_THREE_PROMPT.format(context=dumps(context, indent=2)))
            analysis = normalize_level_three(StrictJSONParser.parse_or_raise(content))

            await BuildingService.save_detailed_report(building_id, analysis, audit.id, session)
            await BuildingService.upsert_audit(building_id, audit.type, {"level": AuditLevel.III.value}, session)

        return analysis


_audit_orchestrator: Optional[AuditOrchestrator] = None


def get_audit_orchestrator() -> AuditOrchestrator:
    global _audit_orchestrator
    if _audit_orchestrator is None:
        _audit_orchestrator = AuditOrchestrator()
    return _audit_orchestrator
