"""
Live-feature entitlement routes.
"""
import logging

from fastapi import APIRouter, Depends

from lappeleken.api.dependencies import get_entitlements
from lappeleken.services.entitlements import EntitlementGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entitlements", tags=["entitlements"])


@router.get("", response_model=dict)
async def get_entitlements_status(gate: EntitlementGate = Depends(get_entitlements)):
    return gate.status()


@router.post("/ad-reward", response_model=dict)
async def grant_ad_reward(gate: EntitlementGate = Depends(get_entitlements)):
    """Credit one extra live match for today after a rewarded ad."""
    remaining = gate.grant_ad_reward()
    logger.info(f"Ad reward granted, {remaining} live matches left today")
    return gate.status()


@router.post("/upgrade", response_model=dict)
async def upgrade(gate: EntitlementGate = Depends(get_entitlements)):
    gate.upgrade()
    return gate.status()
