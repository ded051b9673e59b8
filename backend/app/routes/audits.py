import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_async_session
from models.schemas import AuditResponse, DetailedAuditRequest, InitialAuditResponse
from services.audit_orchestrator import AuditOrchestrator, IncomingFile, get_audit_orchestrator
from services.building_service import building_service
from services.error_types import NotFoundError
from services.report_renderer import ReportRenderer, build_report_context, get_report_renderer

logger = logging.getLogger(__name__)
router = APIRouter()


async def _incoming(upload: UploadFile) -> IncomingFile:
    data = await upload.read()
    return IncomingFile(
        file_name=upload.filename or "upload",
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


def _audit_response(audit) -> AuditResponse:
    status = audit.status.value if hasattr(audit.status, "value") else audit.status
    return AuditResponse(
        id=audit.id,
        building_id=audit.building_id,
        type=audit.type,
        level=audit.level,
        status=status,
        findings=audit.findings or {},
        recommendations=audit.recommendations or [],
        key_metrics=audit.key_metrics or {},
        executive_summary=audit.executive_summary or {},
        created_at=audit.created_at,
        updated_at=audit.updated_at,
    )


async def _report_context(building_id: str, session: AsyncSession) -> dict:
    graph = await building_service.get_building_graph(building_id, session)
    report = await building_service.get_detailed_report(building_id, session)
    audits = graph["audits"]
    return build_report_context(
        graph["building"],
        audits[0] if audits else None,
        graph["rooms"],
        graph["equipment"],
        report.content if report is not None else None,
    )


@router.post("/{building_id}/initial", response_model=InitialAuditResponse)
async def run_initial_audit(
    building_id: str,
    bills: List[UploadFile] = File(default=[]),
    floor_plan: Optional[UploadFile] = File(default=None),
    session: AsyncSession = Depends(get_async_session),
    orchestrator: AuditOrchestrator = Depends(get_audit_orchestrator),
):
    """
    Level I audit from electricity bills and a floor plan

    Returns the initial report, the rooms read from the floor plan (or equal-split
    defaults) and the per-file errors that did not stop the audit.
    """
    bill_files = [await _incoming(bill) for bill in bills]
    plan_file = await _incoming(floor_plan) if floor_plan is not None else None

    result = await orchestrator.run_initial_audit(building_id, bill_files, plan_file, session)
    return InitialAuditResponse(
        audit_id=result.audit_id,
        audit_level=result.audit_level,
        report=result.report,
        rooms=result.rooms,
        processing_errors=result.processing_errors,
        no_room_data_found=result.no_room_data_found,
    )


@router.post("/{building_id}/detailed")
async def run_detailed_audit(
    building_id: str,
    payload: DetailedAuditRequest,
    session: AsyncSession = Depends(get_async_session),
    orchestrator: AuditOrchestrator = Depends(get_audit_orchestrator),
):
    """Level II audit from the collected equipment"""
    equipment = [eq.model_dump() for eq in payload.equipment]
    result = await orchestrator.run_detailed_audit(building_id, equipment, session, audit_type=payload.type.value)
    return {
        "audit_id": result.audit_id,
        "audit_level": result.audit_level,
        **result.analysis,
        "metrics": result.metrics,
        "equipment": result.equipment,
    }


@router.post("/{building_id}/analysis")
async def level_three_analysis(
    building_id: str,
    force: bool = False,
    session: AsyncSession = Depends(get_async_session),
    orchestrator: AuditOrchestrator = Depends(get_audit_orchestrator),
):
    """Level III analysis; served from the stored report unless force=true"""
    return await orchestrator.generate_level_three_analysis(building_id, session, force=force)


@router.get("/{building_id}/latest", response_model=AuditResponse)
async def latest_audit(building_id: str, session: AsyncSession = Depends(get_async_session)):
    await building_service.get_building(building_id, session)
    audit = await building_service.get_latest_audit(building_id, session)
    if audit is None:
        raise NotFoundError("No audit found for this building", {"building_id": building_id})
    return _audit_response(audit)


@router.get("/{building_id}/summary")
async def audit_summary(building_id: str, session: AsyncSession = Depends(get_async_session)):
    """Report view model: metrics, room loads, recommendations, compliance"""
    return await _report_context(building_id, session)


@router.get("/{building_id}/report.html", response_class=HTMLResponse)
async def report_html(
    building_id: str,
    session: AsyncSession = Depends(get_async_session),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    context = await _report_context(building_id, session)
    return HTMLResponse(renderer.render_html(context))


@router.get("/{building_id}/report.pdf")
async def report_pdf(
    building_id: str,
    session: AsyncSession = Depends(get_async_session),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    context = await _report_context(building_id, session)
    pdf = await run_in_threadpool(renderer.render_pdf, context)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="energy-audit-report-{building_id}.pdf"'},
    )


@router.post("/{building_id}/share")
async def share_report(
    building_id: str,
    session: AsyncSession = Depends(get_async_session),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    """Publish the report data and return a shareable URL"""
    context = await _report_context(building_id, session)
    url = await renderer.share_report(building_id, context)
    return {"url": url}


@router.post("/{building_id}/export")
async def export_report(
    building_id: str,
    session: AsyncSession = Depends(get_async_session),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    """Write the PDF report to the reports directory"""
    context = await _report_context(building_id, session)
    path = await renderer.export_report_file(building_id, context)
    return {"path": path}
