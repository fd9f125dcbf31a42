"""
backend/oddsbook/routers/odds_proxy.py

Purpose:
    Odds proxy API: cached pre-match/live odds, cached scores and the sports
    list. Callers send their own provider api_key. Upstream failures map to
    429 (rate limit), 400 (invalid request) or the upstream status with its
    body.

Dependencies:
    - oddsbook.services.odds_gateway_service
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from oddsbook.models.odds import PrematchOddsRequest, ScoresRequest
from oddsbook.providers.errors import BadRequest, OddsProviderError, RateLimited
from oddsbook.services.odds_gateway_service import OddsGatewayService

logger = logging.getLogger("oddsbook.odds_proxy")

router = APIRouter(tags=["odds-proxy"])

_gateway: Optional[OddsGatewayService] = None


def get_odds_gateway() -> OddsGatewayService:
    global _gateway
    if _gateway is None:
        _gateway = OddsGatewayService()
    return _gateway


def provider_error_response(exc: OddsProviderError) -> JSONResponse:
    """Translate a classified provider error into the public error body."""
    if isinstance(exc, RateLimited):
        return JSONResponse(status_code=429, content={"error": "Rate limit exceeded"})
    if isinstance(exc, BadRequest):
        message = str(exc)
        if exc.body is not None:
            message = f"{message} - check sport key, markets and bookmakers against the provider docs"
        return JSONResponse(status_code=400, content={"error": message})
    body = exc.body if exc.body not in (None, "") else str(exc)
    return JSONResponse(status_code=exc.status_code or 502, content={"error": body})


@router.post("/prematch_live_odds")
async def prematch_live_odds(
    body: PrematchOddsRequest,
    gateway: OddsGatewayService = Depends(get_odds_gateway),
):
    """Odds for one sport, cached per sport/markets/bookmakers-or-regions."""
    try:
        return await gateway.prematch_live_odds(body)
    except OddsProviderError as exc:
        logger.warning("Odds proxy failed for %s: %s", body.sport, exc)
        return provider_error_response(exc)


@router.post("/scores")
async def scores(
    body: ScoresRequest,
    gateway: OddsGatewayService = Depends(get_odds_gateway),
):
    """Live and recent scores, cached per sport/days_from."""
    try:
        return await gateway.scores(body)
    except OddsProviderError as exc:
        logger.warning("Scores proxy failed for %s: %s", body.sport, exc)
        return provider_error_response(exc)


@router.get("/sports")
async def sports(
    api_key: Optional[str] = Query(None),
    gateway: OddsGatewayService = Depends(get_odds_gateway),
):
    try:
        return await gateway.sports(api_key)
    except OddsProviderError as exc:
        logger.warning("Sports proxy failed: %s", exc)
        return provider_error_response(exc)
