import logging

from fastapi import APIRouter, Depends

from models.schemas import ChatMessage, ChatRequest, ChatResponse
from services.chat_service import AudenChat, get_auden_chat

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ChatResponse)
async def chat(payload: ChatRequest, assistant: AudenChat = Depends(get_auden_chat)):
    """Ask Auden, the energy audit assistant"""
    history = [message.model_dump() for message in payload.messages]
    reply = await assistant.reply(history)
    return ChatResponse(message=ChatMessage(**reply))
