"""
Tests for report metrics, HTML rendering and report publishing
"""

import os
import pytest
from dataclasses import replace
from unittest.mock import patch

from core.environment import load_settings
from services.report_renderer import (
    ReportRenderer,
    build_report_context,
    summary_metrics,
    room_load_rows,
)
from services.error_types import ConfigurationError

ROOMS = [
    {"name": "Office", "area": 40.0, "lighting_type": "LED", "num_fixtures": 8, "ac_size": 12},
    {"name": "Office", "area": 30.0, "lighting_type": "LED", "num_fixtures": 4, "ac_size": 0},
    {"name": "Store", "area": 4.0, "lighting_type": "Halogen", "num_fixtures": 1, "ac_size": 0},
    {"name": "Hall", "area": 26.0, "lighting_type": "Fluorescent", "num_fixtures": 5, "ac_size": 9},
]

BUILDING = {"id": "b-1", "name": "Head Office", "address": "<b>1 Main St</b>", "type": "commercial", "area": 100}

AUDIT = {
    "id": 7, "type": "detailed", "level": "II", "status": "completed",
    "recommendations": [
        {"title": "LED retrofit", "savings": {"cost": 1200, "energy": 8000, "carbon": 3.4}, "priority": "high"},
        {"title": "Timers", "savings": 300, "priority": "urgent"},
    ],
}


def make_renderer(tmp_path=None, store=None, **overrides):
    settings = replace(load_settings(), **overrides)
    if tmp_path is not None:
        settings = replace(settings, reports_dir=str(tmp_path / "reports"))
    return ReportRenderer(settings=settings, store=store)


class TestReportMetrics:

    def test_summary_metrics(self):
        metrics = summary_metrics(ROOMS)

        # (12 + 9) x 0.293
        assert metrics["hvac_load"] == pytest.approx(6.2)
        # (8x15 + 4x15 + 50 + 5x32) W over 100 m²
        assert metrics["lighting_power"] == pytest.approx(3.9)
        assert metrics["ventilation_rate"] == 30

    def test_summary_metrics_without_rooms(self):
        assert summary_metrics([]) == {"hvac_load": 0.0, "lighting_power": 0.0, "ventilation_rate": 0}

    def test_room_rows_skip_small_and_duplicate_rooms(self):
        rows = room_load_rows(ROOMS)

        assert [row["name"] for row in rows] == ["Office", "Hall"]
        assert rows[0]["area"] == 40.0
        assert rows[0]["lighting_watts"] == 120
        assert rows[1]["cooling_kw"] == pytest.approx(2.64)

    def test_context_totals_use_canonical_savings(self):
        context = build_report_context(BUILDING, AUDIT, ROOMS, [])

        assert context["totals"]["savings_usd"] == 1500.0
        assert context["totals"]["savings_kwh"] == 8000.0
        assert [r["priority"] for r in context["recommendations"]] == ["High", "Medium"]
        assert context["monitoring"]["placeholder"] is True

    def test_level_three_analysis_takes_precedence(self):
        analysis = {
            "executive_summary": {"annual_savings": 5000},
            "recommendations": [{"title": "Chiller", "savings": 5000, "priority": "Low"}],
        }

        context = build_report_context(BUILDING, AUDIT, ROOMS, [], analysis)

        assert [r["title"] for r in context["recommendations"]] == ["Chiller"]
        assert context["executive_summary"] == {"annual_savings": 5000}

    def test_equipment_grouped_by_category(self):
        equipment = [
            {"category": "HVAC", "efficiency": 0.8, "condition": "Fair"},
            {"category": "HVAC", "efficiency": 0.6, "condition": "Poor"},
        ]

        context = build_report_context(BUILDING, None, [], equipment)

        assert context["audit"] is None
        assert context["equipment"] == [
            {"type": "HVAC", "count": 2, "avg_efficiency": 0.7, "condition": "Fair, Poor"}
        ]


class TestReportRenderer:

    def test_render_html(self):
        renderer = make_renderer()
        html = renderer.render_html(build_report_context(BUILDING, AUDIT, ROOMS, []))

        assert "Head Office" in html
        assert "&lt;b&gt;1 Main St&lt;/b&gt;" in html
        assert "ISO 50002:2014, Sections 5-8" in html
        assert "ISO 50006 + IPMVP Option B" in html
        assert "1,500" in html
        assert "Illustrative data" in html

    def test_pdf_disabled(self):
        renderer = make_renderer(disable_pdf=True)

        with pytest.raises(ConfigurationError, match="PDF generation is disabled"):
            renderer.render_pdf(build_report_context(BUILDING, AUDIT, ROOMS, []))

    def test_render_pdf_uses_wkhtmltopdf(self):
        renderer = make_renderer(disable_pdf=False)

        with patch("services.report_renderer.pdfkit.from_string", return_value=b"%PDF-1.4") as from_string:
            pdf = renderer.render_pdf(build_report_context(BUILDING, AUDIT, ROOMS, []))

        assert pdf == b"%PDF-1.4"
        args, kwargs = from_string.call_args
        assert "Head Office" in args[0]
        assert args[1] is False
        assert kwargs["options"]["page-size"] == "A4"

    @pytest.mark.asyncio
    async def test_share_report(self, fake_store):
        renderer = make_renderer(store=fake_store)
        context = build_report_context(BUILDING, AUDIT, ROOMS, [])

        url = await renderer.share_report("b-1", context)

        assert url == "https://store.test/reports/report.json"
        key, payload = fake_store.upload_json.call_args.args
        assert key.startswith("reports/b-1/report-")
        assert key.endswith(".json")
        assert payload is context

    @pytest.mark.asyncio
    async def test_export_report_file(self, tmp_path):
        renderer = make_renderer(tmp_path, disable_pdf=False)

        with patch("services.report_renderer.pdfkit.from_string", return_value=b"%PDF-1.4 report"):
            path = await renderer.export_report_file("b-1", build_report_context(BUILDING, AUDIT, ROOMS, []))

        assert os.path.dirname(path) == str(tmp_path / "reports")
        assert os.path.basename(path).startswith("energy-audit-report-b-1-")
        with open(path, "rb") as f:
            assert f.read() == b"%PDF-1.4 report"
