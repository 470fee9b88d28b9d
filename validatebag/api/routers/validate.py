"""
validatebag -- Validation REST Router

Endpoints:
  GET  /           -- service banner with version
  POST /validate   -- validate the bag at ``uri`` as ``infoPackageType``

The report is returned as JSON, or as plain text for ``Accept: text/plain``.
Input errors answer 400 and fatal rule outcomes 500, both as plain text.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from validatebag.systems.validation.errors import (
    BagNotFoundError,
    InvalidInfoPackageTypeError,
    RuleEvaluationError,
    UnsupportedProfileVersionError,
)

logger = structlog.get_logger("validatebag.api.validate")

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
def index(request: Request) -> str:
    return f"EASY Validate DANS Bag Service running v{request.app.state.config.version}."


@router.post("/validate")
def validate_bag(
    request: Request,
    info_package_type: str = Query("SIP", alias="infoPackageType"),
    uri: str | None = Query(None),
) -> Any:
    """Validate one bag. Runs in the worker thread pool; evaluation blocks."""
    if not uri:
        return PlainTextResponse("Input error: query parameter 'uri' is mandatory", status_code=400)

    service = request.app.state.validation
    try:
        report = service.validate(uri, info_package_type)
    except InvalidInfoPackageTypeError as e:
        return PlainTextResponse(f"Input error: {e}", status_code=400)
    except (BagNotFoundError, UnsupportedProfileVersionError) as e:
        logger.info("validate_input_error", uri=uri, error=str(e))
        return PlainTextResponse(str(e), status_code=400)
    except RuleEvaluationError as e:
        logger.error("validate_fatal", uri=uri, rule=e.rule_number, error=e.detail)
        return PlainTextResponse(str(e), status_code=500)

    if "text/plain" in request.headers.get("accept", ""):
        return PlainTextResponse(report.to_text())
    return JSONResponse(report.to_json_dict())
