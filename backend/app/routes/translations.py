import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.environment import load_settings
from database import get_async_session
from models.schemas import TranslateRequest
from services.error_types import NotFoundError
from services.translation_service import TranslationService

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_translation_service(
    locale: str,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> TranslationService:
    """
    One service per supported locale, kept on the application state.

    Unknown locales are rejected before anything is cached. A catalog older
    than TRANSLATION_CACHE_SECONDS is read again.
    """
    settings = load_settings()
    if locale not in settings.supported_locales:
        raise NotFoundError(f"Locale {locale} is not supported",
                            {"locale": locale, "supported": settings.supported_locales})

    services: Dict[str, TranslationService] = getattr(request.app.state, "translations", None)
    if services is None:
        services = {}
        request.app.state.translations = services

    service = services.get(locale)
    if service is None:
        service = TranslationService()
        services[locale] = service
    if service.is_stale(settings.translation_cache_seconds):
        await service.load(session, locale)
    return service


@router.get("/{locale}")
async def get_catalog(locale: str, service: TranslationService = Depends(get_translation_service)):
    return {"locale": locale, "translations": dict(service.state.catalog)}


@router.post("/{locale}/translate")
async def translate(locale: str, payload: TranslateRequest,
                    service: TranslationService = Depends(get_translation_service)):
    return {"locale": locale, "translations": service.translate_many(payload.texts)}
