"""Diagnostics endpoint."""
from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.core.config import get_settings
from src.services.diagnostics import collect_diagnostics
from src.services.probe import EnvironmentProbe, get_probe

router = APIRouter(tags=["diagnostics"])


class PrettyJSONResponse(JSONResponse):
    """JSON response indented for human readers."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=4).encode("utf-8")


# PUBLIC_INTERFACE
@router.get(
    "/",
    summary="Runtime diagnostics",
    description="Identity, module availability, filesystem and session state of the running container.",
    operation_id="diagnostics",
    response_class=PrettyJSONResponse,
)
def diagnostics(request: Request, probe: EnvironmentProbe = Depends(get_probe)):
    """Return the diagnostics snapshot; always 200."""
    session = request.session if "session" in request.scope else None
    report = collect_diagnostics(probe, request.scope, session, settings=get_settings())
    return PrettyJSONResponse(content=report.model_dump(by_alias=True))
