"""
Translation catalog per locale

The service is either NotInitialized or Ready(locale, catalog); translate()
is only defined in the Ready state.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Union

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.db_models import Translation
from services.error_types import TranslationNotReadyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotInitialized:
    pass


@dataclass(frozen=True)
class Ready:
    locale: str
    catalog: Dict[str, str] = field(default_factory=dict)


TranslationState = Union[NotInitialized, Ready]


class TranslationService:
    def __init__(self):
        self.state: TranslationState = NotInitialized()
        self.loaded_at: float = 0.0

    @property
    def is_ready(self) -> bool:
        return isinstance(self.state, Ready)

    def is_stale(self, max_age: float) -> bool:
        """Not loaded, or loaded more than max_age seconds ago"""
        return not self.is_ready or time.monotonic() - self.loaded_at > max_age

    @property
    def locale(self) -> str:
        if isinstance(self.state, Ready):
            return self.state.locale
        raise TranslationNotReadyError("Translations have not been loaded")

    async def load(self, session: AsyncSession, locale: str) -> Ready:
        """Read the locale's catalog and move to Ready"""
        result = await session.execute(select(Translation).where(Translation.locale == locale))
        catalog = {row.key: row.value for row in result.scalars().all()}
        self.state = Ready(locale=locale, catalog=catalog)
        self.loaded_at = time.monotonic()
        logger.info(f"Loaded {len(catalog)} translations for locale {locale}")
        return self.state

    def translate(self, text: str) -> str:
        """Catalog value for text, or text itself when there is no entry"""
        if not isinstance(self.state, Ready):
            raise TranslationNotReadyError(
                "Translations have not been loaded", {"text": text[:100]}
            )
        return self.state.catalog.get(text, text)

    def try_translate(self, text: str) -> str:
        if not isinstance(self.state, Ready):
            return text
        return self.state.catalog.get(text, text)

    def translate_many(self, texts: List[str]) -> Dict[str, str]:
        return {text: self.translate(text) for text in texts}
