import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from services.proxy_service import ProxyError, ProxyService, get_proxy_service
from utils.logging_utils import log_with_context

logger = logging.getLogger(__name__)
router = APIRouter()


async def _read_body(request: Request) -> Dict[str, Any]:
    """JSON body, or form fields for multipart/urlencoded requests"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return {key: value for key, value in form.items()}
    try:
        return await request.json()
    except ValueError:
        raise ProxyError("invalid_request", "Invalid request format", 400)


def _error_response(error: ProxyError) -> JSONResponse:
    log_with_context("warning", f"Proxy request failed: {error.message}",
                     {"type": error.type, "status": error.status}, logger)
    return JSONResponse(status_code=error.status, content=error.to_body())


@router.post("/chat")
async def proxy_chat(request: Request, proxy: ProxyService = Depends(get_proxy_service)):
    """Forward a chat completion request upstream"""
    try:
        body = await _read_body(request)
        return await proxy.chat(body)
    except ProxyError as e:
        return _error_response(e)


@router.post("/files")
async def proxy_files(request: Request, proxy: ProxyService = Depends(get_proxy_service)):
    """Analyse documents by URL"""
    try:
        body = await _read_body(request)
        return await proxy.analyze_files(body)
    except ProxyError as e:
        return _error_response(e)
