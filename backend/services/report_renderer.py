import os
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Iterable

import aiofiles
import pdfkit
from jinja2 import Environment, FileSystemLoader

from core.environment import Settings, load_settings
from services.document_store import DocumentStore, get_document_store
from services.error_types import ConfigurationError
from services.room_parser import dedupe_rooms_by_name
from services.analysis_normalizer import normalize_recommendations, total_savings
from utils.json_utils import ensure_json_serializable
from utils.logging_utils import Timer

logger = logging.getLogger(__name__)

# Watts per fixture
FIXTURE_WATTAGE = {
    'LED': 15,
    'CFL': 25,
    'Fluorescent': 32,
    'Halogen': 50,
}
AC_SIZE_TO_KW = 0.293
VENTILATION_RATE = 0.3  # L/s per m²
ROOM_LOAD_MIN_AREA = 5
PDF_RENDER_WARN_SECONDS = 30

COMPLIANCE_TABLE = [
    {'section': 'Intake', 'ashrae': 'Level I', 'iso': 'ISO 50001:2018, Clause 6.3'},
    {'section': 'Detailed Audit', 'ashrae': 'Level II', 'iso': 'ISO 50002:2014, Sections 5-8'},
    {'section': 'Simulation', 'ashrae': 'Level III', 'iso': 'ISO 50002:2014, Section 9'},
    {'section': 'M&V', 'ashrae': 'N/A', 'iso': 'ISO 50006 + IPMVP Option B'},
]

# Illustrative series until metered data is ingested
MONITORING_PLACEHOLDER = {
    'placeholder': True,
    'labels': ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec'],
    'baseline': [65, 59, 80, 81, 56, 55, 40, 45, 50, 55, 60, 70],
    'projected': [45, 39, 60, 61, 36, 35, 30, 35, 40, 45, 50, 55],
}


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _room_lighting_watts(room: Any) -> float:
    watts = FIXTURE_WATTAGE.get(_get(room, 'lighting_type') or '', 0)
    return watts * (_get(room, 'num_fixtures') or 0)


def summary_metrics(rooms: Iterable[Any]) -> Dict[str, float]:
    """HVAC capacity (kW), lighting power density (W/m²) and ventilation rate (L/s)"""
    rooms = list(rooms)
    total_area = sum(float(_get(room, 'area') or 0) for room in rooms)
    total_lighting = sum(_room_lighting_watts(room) for room in rooms)

    return {
        'hvac_load': round(sum((_get(room, 'ac_size') or 0) * AC_SIZE_TO_KW for room in rooms), 1),
        'lighting_power': round(total_lighting / total_area, 1) if total_area > 0 else 0.0,
        'ventilation_rate': round(total_area * VENTILATION_RATE),
    }


def room_load_rows(rooms: Iterable[Any]) -> List[Dict[str, Any]]:
    """Per-room loads for rooms above 5 m², one row per name"""
    rows = []
    for room in dedupe_rooms_by_name(rooms, min_area=ROOM_LOAD_MIN_AREA):
        area = float(_get(room, 'area') or 0)
        lighting = _room_lighting_watts(room)
        rows.append({
            'name': _get(room, 'name'),
            'area': round(area, 1),
            'lighting_type': _get(room, 'lighting_type') or '',
            'lighting_watts': lighting,
            'lighting_density': round(lighting / area, 1) if area else 0.0,
            'cooling_kw': round((_get(room, 'ac_size') or 0) * AC_SIZE_TO_KW, 2),
            'ventilation': round(area * VENTILATION_RATE, 1),
        })
    return rows


def _equipment_summary(equipment: Iterable[Any]) -> List[Dict[str, Any]]:
    """Count, average efficiency and conditions per category"""
    groups: Dict[str, Dict[str, Any]] = {}
    for eq in equipment:
        category = _get(eq, 'category') or 'Uncategorized'
        group = groups.setdefault(category, {'type': category, 'count': 0, 'efficiency_total': 0.0,
                                             'conditions': set()})
        group['count'] += 1
        group['efficiency_total'] += float(_get(eq, 'efficiency') or 0)
        if _get(eq, 'condition'):
            group['conditions'].add(_get(eq, 'condition'))

    return [
        {
            'type': g['type'],
            'count': g['count'],
            'avg_efficiency': round(g['efficiency_total'] / g['count'], 2),
            'condition': ', '.join(sorted(g['conditions'])),
        }
        for g in groups.values()
    ]


def build_report_context(building: Any, audit: Any, rooms: Iterable[Any], equipment: Iterable[Any],
                         analysis: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the report view model.

    Args:
        building: building row or dict
        audit: latest audit row or dict, may be None
        rooms: building rooms
        equipment: building equipment
        analysis: level III analysis when available

    Returns:
        JSON-serializable dict consumed by the HTML template and share links
    """
    rooms = list(rooms)
    equipment = list(equipment)
    analysis = analysis or {}

    recommendations = normalize_recommendations(
        analysis.get('recommendations') or _get(audit, 'recommendations') or []
    )

    context = {
        'building': {
            'id': _get(building, 'id'),
            'name': _get(building, 'name') or '',
            'address': _get(building, 'address') or '',
            'type': _get(building, 'type'),
            'area': _get(building, 'area') or 0,
            'construction_year': _get(building, 'construction_year'),
        },
        'audit': {
            'id': _get(audit, 'id'),
            'type': _get(audit, 'type'),
            'level': _get(audit, 'level'),
            'status': _get(audit, 'status'),
            'key_metrics': _get(audit, 'key_metrics') or {},
            'executive_summary': _get(audit, 'executive_summary') or {},
        } if audit is not None else None,
        'metrics': summary_metrics(rooms),
        'room_loads': room_load_rows(rooms),
        'equipment': _equipment_summary(equipment),
        'executive_summary': analysis.get('executive_summary') or {},
        'energy_performance': analysis.get('energy_performance') or {},
        'recommendations': recommendations,
        'totals': total_savings(recommendations),
        'compliance': COMPLIANCE_TABLE,
        'monitoring': MONITORING_PLACEHOLDER,
        'generated_at': datetime.now(timezone.utc).isoformat(),
    }
    return ensure_json_serializable(context)


class ReportRenderer:
    """Renders audit reports to HTML and PDF and publishes share links"""

    def __init__(self, settings: Optional[Settings] = None, store: Optional[DocumentStore] = None):
        self.settings = settings or load_settings()
        self._store = store
        self.template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'html_templates')

        self.jinja_env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=True
        )
        self.jinja_env.filters['number_format'] = self._number_format

        self.pdf_options = {
            'page-size': 'A4',
            'margin-top': '0.75in',
            'margin-right': '0.75in',
            'margin-bottom': '0.75in',
            'margin-left': '0.75in',
            'encoding': "UTF-8",
            'no-outline': None,
            'print-media-type': None,
        }

    @property
    def store(self) -> DocumentStore:
        if self._store is None:
            self._store = get_document_store()
        return self._store

    def _number_format(self, value, decimals: int = 0):
        """Format numbers with commas"""
        try:
            return f"{float(value):,.{decimals}f}"
        except (ValueError, TypeError):
            return str(value)

    def render_html(self, context: Dict[str, Any]) -> str:
        template = self.jinja_env.get_template('audit_report.html')
        return template.render(**context)

    def render_pdf(self, context: Dict[str, Any]) -> bytes:
        """Render through wkhtmltopdf; blocking"""
        if self.settings.disable_pdf:
            raise ConfigurationError("PDF generation is disabled (DISABLE_PDF=true)")

        html = self.render_html(context)
        config = None
        if self.settings.wkhtmltopdf_path:
            config = pdfkit.configuration(wkhtmltopdf=self.settings.wkhtmltopdf_path)
        with Timer(f"PDF render for building {context.get('building', {}).get('id', '-')}", logger,
                   warn_after=PDF_RENDER_WARN_SECONDS):
            return pdfkit.from_string(html, False, options=self.pdf_options, configuration=config)

    async def share_report(self, building_id: str, context: Dict[str, Any]) -> str:
        """Publish the view model as JSON and return its public URL"""
        key = f"reports/{building_id}/report-{int(datetime.now(timezone.utc).timestamp() * 1000)}.json"
        url = await self.store.upload_json(key, context)
        logger.info(f"Shared report for building {building_id} at {url}")
        return url

    async def export_report_file(self, building_id: str, context: Dict[str, Any]) -> str:
        """Write the PDF under the reports directory and return its path"""
        loop = asyncio.get_running_loop()
        pdf = await loop.run_in_executor(None, self.render_pdf, context)

        os.makedirs(self.settings.reports_dir, exist_ok=True)
        filename = f"energy-audit-report-{building_id}-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}.pdf"
        path = os.path.join(self.settings.reports_dir, filename)

        async with aiofiles.open(path, 'wb') as f:
            await f.write(pdf)

        logger.info(f"Exported report for building {building_id} to {path}")
        return path


_report_renderer: Optional[ReportRenderer] = None


def get_report_renderer() -> ReportRenderer:
    global _report_renderer
    if _report_renderer is None:
        _report_renderer = ReportRenderer()
    return _report_renderer
