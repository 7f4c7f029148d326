"""Service functions callable over plain HTTP by the dashboard.

``calculate-agent-commissions`` returns every agent with its commission
rollup.  It takes no input, needs no session, and answers CORS preflight
itself so browsers on any origin can call it.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.database import get_db
from eduadmin.services.commission_service import CommissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions/v1", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@router.options("/calculate-agent-commissions")
async def calculate_agent_commissions_preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


@router.api_route("/calculate-agent-commissions", methods=["GET", "POST"])
async def calculate_agent_commissions(db: AsyncSession = Depends(get_db)):
    logger.info("Starting agent commission calculation")
    try:
        items = await CommissionService(db).compute_all_agent_commissions()
    except Exception as e:
        logger.exception("Error in calculate-agent-commissions")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
            headers=CORS_HEADERS,
        )

    logger.info(f"Agent commission calculation completed for {len(items)} agents")
    return JSONResponse(status_code=200, content=items, headers=CORS_HEADERS)
