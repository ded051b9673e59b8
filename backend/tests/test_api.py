"""
API tests through the ASGI app
"""

import json
import pytest
from unittest.mock import AsyncMock

from app.main import app
from services.audit_orchestrator import AuditOrchestrator, get_audit_orchestrator
from services.chat_service import AudenChat, get_auden_chat
from services.report_renderer import ReportRenderer, get_report_renderer
from models.db_models import Translation
from conftest import FLOOR_PLAN_TEXT, DETAILED_ANALYSIS


@pytest.fixture
def orchestrator_override(fake_store, fake_ocr, fake_llm):
    app.dependency_overrides[get_audit_orchestrator] = lambda: AuditOrchestrator(
        store=fake_store, ocr=fake_ocr, llm=fake_llm
    )
    yield
    app.dependency_overrides.pop(get_audit_orchestrator, None)


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_healthz(self, test_client):
        response = await test_client.get("/healthz")
        assert response.json()["status"] == "ok"


class TestBuildings:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client):
        response = await test_client.post("/api/v1/buildings", json={
            "name": "Warehouse", "type": "industrial", "area": 7500, "rooms_count": 3,
        })

        assert response.status_code == 201
        created = response.json()
        assert created["audit_level"] == "II"
        assert created["customer_type"] == "industrial"

        response = await test_client.get(f"/api/v1/buildings/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Warehouse"

    @pytest.mark.asyncio
    async def test_invalid_area_rejected(self, test_client):
        response = await test_client.post("/api/v1/buildings", json={"area": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_building_is_structured_404(self, test_client):
        response = await test_client.get("/api/v1/buildings/does-not-exist")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["type"] == "NotFoundError"
        assert error["message"] == "Building does-not-exist not found"

    @pytest.mark.asyncio
    async def test_rooms_round_trip(self, test_client, building):
        response = await test_client.put(f"/api/v1/buildings/{building.id}/rooms", json=[
            {"name": "Kitchen", "area": 12.5, "lighting_type": "LED", "num_fixtures": 4},
            {"name": "Bedroom", "area": 14, "ac_type": "Split", "ac_size": 12},
        ])
        assert response.status_code == 200

        response = await test_client.get(f"/api/v1/buildings/{building.id}/rooms")
        rooms = response.json()["rooms"]
        assert [room["name"] for room in rooms] == ["Kitchen", "Bedroom"]
        assert rooms[1]["ac_size"] == 12

    @pytest.mark.asyncio
    async def test_equipment_types(self, test_client):
        response = await test_client.get("/api/v1/buildings/equipment-types/commercial")

        assert response.status_code == 200
        options = response.json()
        assert options["customerType"] == "commercial"
        assert options["categories"]


class TestAudits:

    @pytest.mark.asyncio
    async def test_initial_audit_upload(self, test_client, building, orchestrator_override, ocr_texts):
        ocr_texts["plan.png"] = FLOOR_PLAN_TEXT

        response = await test_client.post(
            f"/api/v1/audits/{building.id}/initial",
            files=[
                ("bills", ("march.pdf", b"%PDF-1.4 march", "application/pdf")),
                ("floor_plan", ("plan.png", b"\x89PNG plan", "image/png")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["audit_level"] == "I"
        assert {room["name"] for room in body["rooms"]} == {"BEDROOM", "KITCHEN", "LIVING ROOM"}

        response = await test_client.get(f"/api/v1/audits/{building.id}/latest")
        assert response.json()["type"] == "initial"

    @pytest.mark.asyncio
    async def test_initial_audit_without_bills(self, test_client, building, orchestrator_override):
        response = await test_client.post(
            f"/api/v1/audits/{building.id}/initial",
            files=[("floor_plan", ("plan.png", b"\x89PNG plan", "image/png"))],
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Please upload at least one electricity bill."

    @pytest.mark.asyncio
    async def test_detailed_audit(self, test_client, building, orchestrator_override, fake_llm):
        fake_llm.complete_prompt.return_value = json.dumps(DETAILED_ANALYSIS)

        response = await test_client.post(f"/api/v1/audits/{building.id}/detailed", json={
            "equipment": [{
                "category": "HVAC", "subType": "Chiller", "ratedPower": 5, "efficiency": 0.6,
                "operatingHours": 8, "operatingDays": 5, "loadFactor": "Medium",
            }],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["recommendations"][0]["savings_usd"] == 1800.0
        assert body["metrics"]["totalAnnualEnergy"] == pytest.approx(6864.0)

    @pytest.mark.asyncio
    async def test_detailed_audit_rejects_other_types(self, test_client, building, orchestrator_override, fake_llm):
        response = await test_client.post(f"/api/v1/audits/{building.id}/detailed", json={
            "equipment": [{"category": "HVAC", "subType": "Chiller", "ratedPower": 5}],
            "type": "initial",
        })

        assert response.status_code == 422
        fake_llm.complete_prompt.assert_not_called()

    @pytest.mark.asyncio
    async def test_latest_without_audit(self, test_client, building):
        response = await test_client.get(f"/api/v1/audits/{building.id}/latest")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "No audit found for this building"

    @pytest.mark.asyncio
    async def test_summary_and_html(self, test_client, building):
        response = await test_client.get(f"/api/v1/audits/{building.id}/summary")
        assert response.status_code == 200
        assert response.json()["building"]["name"] == "Test House"

        response = await test_client.get(f"/api/v1/audits/{building.id}/report.html")
        assert response.status_code == 200
        assert "Standards Compliance" in response.text

    @pytest.mark.asyncio
    async def test_share(self, test_client, building, fake_store):
        app.dependency_overrides[get_report_renderer] = lambda: ReportRenderer(store=fake_store)
        try:
            response = await test_client.post(f"/api/v1/audits/{building.id}/share")
        finally:
            app.dependency_overrides.pop(get_report_renderer, None)

        assert response.json() == {"url": "https://store.test/reports/report.json"}


class TestProxyAndChat:

    @pytest.mark.asyncio
    async def test_proxy_rejects_bad_json(self, test_client):
        response = await test_client.post(
            "/api/v1/proxy/chat", content=b"{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request"
        assert error["message"] == "Invalid request format"

    @pytest.mark.asyncio
    async def test_proxy_requires_api_key(self, test_client):
        response = await test_client.post("/api/v1/proxy/chat", json={"messages": []})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "API key is required"

    @pytest.mark.asyncio
    async def test_chat(self, test_client):
        llm = AsyncMock()
        llm.complete.return_value = "Turn off the AC at night."
        app.dependency_overrides[get_auden_chat] = lambda: AudenChat(llm=llm)
        try:
            response = await test_client.post("/api/v1/chat", json={
                "messages": [{"role": "user", "content": "How can I save energy?"}],
            })
        finally:
            app.dependency_overrides.pop(get_auden_chat, None)

        assert response.status_code == 200
        assert response.json() == {"message": {"role": "assistant", "content": "Turn off the AC at night."}}


class TestTranslations:

    @pytest.fixture(autouse=True)
    def fresh_catalogs(self):
        app.state.translations = {}
        yield
        app.state.translations = {}

    @pytest.mark.asyncio
    async def test_catalog_and_translate(self, test_client, test_db_session):
        test_db_session.add(Translation(key="Rooms", value="الغرف", locale="ar"))
        await test_db_session.commit()

        response = await test_client.get("/api/v1/translations/ar")
        assert response.json() == {"locale": "ar", "translations": {"Rooms": "الغرف"}}

        response = await test_client.post("/api/v1/translations/ar/translate", json={"texts": ["Rooms", "Area"]})
        assert response.json()["translations"] == {"Rooms": "الغرف", "Area": "Area"}

    @pytest.mark.asyncio
    async def test_unsupported_locale_is_not_cached(self, test_client):
        response = await test_client.get("/api/v1/translations/xx-made-up")

        assert response.status_code == 404
        assert response.json()["error"]["details"]["locale"] == "xx-made-up"
        assert "xx-made-up" not in app.state.translations

    @pytest.mark.asyncio
    async def test_stale_catalog_is_reloaded(self, test_client, test_db_session, monkeypatch):
        monkeypatch.setenv("TRANSLATION_CACHE_SECONDS", "-1")
        await test_client.get("/api/v1/translations/ar")

        test_db_session.add(Translation(key="Area", value="المساحة", locale="ar"))
        await test_db_session.commit()
        response = await test_client.get("/api/v1/translations/ar")

        assert response.json()["translations"] == {"Area": "المساحة"}
