"""
Tests for the translation catalog
"""

import pytest

from models.db_models import Translation
from services.translation_service import TranslationService, NotInitialized, Ready
from services.error_types import TranslationNotReadyError


@pytest.fixture
async def catalog(test_db_session):
    test_db_session.add_all([
        Translation(key="Floor Area", value="المساحة", locale="ar"),
        Translation(key="Rooms", value="الغرف", locale="ar"),
        Translation(key="Rooms", value="Pièces", locale="fr"),
    ])
    await test_db_session.commit()


class TestTranslationService:

    def test_starts_not_initialized(self):
        service = TranslationService()

        assert isinstance(service.state, NotInitialized)
        assert service.is_ready is False
        with pytest.raises(TranslationNotReadyError):
            service.translate("Rooms")
        with pytest.raises(TranslationNotReadyError):
            service.locale

    def test_try_translate_passes_through_before_load(self):
        assert TranslationService().try_translate("Rooms") == "Rooms"

    @pytest.mark.asyncio
    async def test_load_then_translate(self, test_db_session, catalog):
        service = TranslationService()

        state = await service.load(test_db_session, "ar")

        assert isinstance(state, Ready)
        assert service.locale == "ar"
        assert service.translate("Rooms") == "الغرف"
        assert service.translate("Equipment") == "Equipment"
        assert service.translate_many(["Floor Area", "Rooms"]) == {
            "Floor Area": "المساحة",
            "Rooms": "الغرف",
        }

    @pytest.mark.asyncio
    async def test_reload_switches_locale(self, test_db_session, catalog):
        service = TranslationService()
        await service.load(test_db_session, "ar")
        await service.load(test_db_session, "fr")

        assert service.translate("Rooms") == "Pièces"
        assert service.translate("Floor Area") == "Floor Area"

    @pytest.mark.asyncio
    async def test_staleness(self, test_db_session, catalog):
        service = TranslationService()
        assert service.is_stale(300) is True

        await service.load(test_db_session, "ar")

        assert service.is_stale(300) is False
        assert service.is_stale(-1) is True
