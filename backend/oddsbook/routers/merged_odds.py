"""
backend/oddsbook/routers/merged_odds.py

Purpose:
    Merged best-price odds per sport (fetch orchestrator + merge engine) and
    read access to the latest persisted snapshot.

Dependencies:
    - oddsbook.services.odds_gateway_service
    - oddsbook.services.snapshot_repository
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from oddsbook.models.odds import MergedOddsRequest, MergedOddsResponse
from oddsbook.providers.errors import OddsProviderError
from oddsbook.routers.odds_proxy import get_odds_gateway, provider_error_response
from oddsbook.services.odds_gateway_service import OddsGatewayService
from oddsbook.services.snapshot_repository import SNAPSHOT_KINDS, SnapshotRepository, snapshot_repository

logger = logging.getLogger("oddsbook.merged_odds")

router = APIRouter(tags=["merged-odds"])


def get_snapshot_repository() -> SnapshotRepository:
    return snapshot_repository


@router.post("/merged_odds", response_model=MergedOddsResponse)
async def merged_odds(
    body: MergedOddsRequest,
    gateway: OddsGatewayService = Depends(get_odds_gateway),
):
    """Every market of a sport, one record per match, one market per canonical key."""
    try:
        return await gateway.merged_odds(body.sport, api_key=body.api_key)
    except OddsProviderError as exc:
        logger.warning("Merged odds failed for %s: %s", body.sport, exc)
        return provider_error_response(exc)


@router.get("/snapshots/{kind}/{sport}/latest")
async def latest_snapshot(
    kind: str,
    sport: str,
    repository: SnapshotRepository = Depends(get_snapshot_repository),
):
    if kind not in SNAPSHOT_KINDS:
        raise HTTPException(status_code=404, detail="Unknown snapshot kind.")
    doc = await repository.latest(kind, sport)
    if doc is None:
        raise HTTPException(status_code=404, detail="No snapshot found.")
    return doc
