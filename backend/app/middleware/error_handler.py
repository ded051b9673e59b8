from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import traceback
import logging
from typing import Dict, Any, Optional

from core.environment import load_settings
from services.error_types import EnergyAuditError, categorize_exception, log_error_with_context

logger = logging.getLogger(__name__)


def create_error_response(error_type: str, message: str,
                          details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create structured error response"""
    error = {
        "type": error_type,
        "message": message
    }
    if details:
        error["details"] = details
    return {"error": error}


def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
    # Responses built outside the CORS middleware still need the headers
    origin = request.headers.get("origin")
    if origin and origin in load_settings().allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"
    return response


async def energy_audit_exception_handler(request: Request, exc: EnergyAuditError):
    log_error_with_context(exc, {"method": request.method, "path": request.url.path})
    content = create_error_response(type(exc).__name__, exc.message, exc.details)
    return _with_cors(request, JSONResponse(status_code=exc.status_code, content=content))


async def traceback_exception_handler(request: Request, exc: Exception):
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(tb)

    categorized = categorize_exception(exc)
    status_code = categorized.status_code

    if load_settings().debug:
        content = create_error_response(type(categorized).__name__, tb)
    else:
        content = create_error_response(type(categorized).__name__, "Internal server error")

    return _with_cors(request, JSONResponse(status_code=status_code, content=content))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EnergyAuditError, energy_audit_exception_handler)
    app.add_exception_handler(Exception, traceback_exception_handler)
