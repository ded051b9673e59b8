"""
Auden, the energy-efficiency chat assistant
"""

import logging
from typing import List, Dict, Optional

from services.llm_service import LLMService, get_llm_service
from services.error_types import ValidationError

logger = logging.getLogger(__name__)

CHAT_ROLES = ("user", "assistant")

AUDEN_SYSTEM_PROMPT = (
    "You are Auden, an AI energy audit assistant. You help building owners and "
    "auditors understand energy bills, audit levels (ASHRAE Level I-III), "
    "equipment efficiency and savings measures. Answer concisely and practically, "
    "and say so when a question needs an on-site measurement."
)


class AudenChat:
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or get_llm_service()

    async def reply(self, history: List[Dict[str, str]]) -> Dict[str, str]:
        """Answer the conversation; only user and assistant turns are forwarded"""
        messages = [
            {"role": m["role"], "content": m["content"]}
            for m in history
            if m.get("role") in CHAT_ROLES and isinstance(m.get("content"), str)
        ]
        if not messages:
            raise ValidationError("Chat history must contain at least one message")

        content = await self.llm.complete([{"role": "system", "content": AUDEN_SYSTEM_PROMPT}, *messages])
        logger.info(f"Auden replied to a {len(messages)}-message conversation")
        return {"role": "assistant", "content": content}


_auden_chat: Optional[AudenChat] = None


def get_auden_chat() -> AudenChat:
    global _auden_chat
    if _auden_chat is None:
        _auden_chat = AudenChat()
    return _auden_chat
