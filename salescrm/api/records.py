"""
FastAPI router for the RM record workflows.

Key Endpoints:
- POST /rms/{rm_id}/channel-partners/onboard - Onboard a channel partner
- POST /rms/{rm_id}/meetings/log - Log a meeting (a deal win also records a sale)
- POST /rms/{rm_id}/sales/record - Record a sale

The acting RM is the path parameter; there is no session state.
"""

import logging

from fastapi import APIRouter

from salescrm.api.errors import http_error_for
from salescrm.core.dependencies import NowDep, StoreDep
from salescrm.core.store import StoreError
from salescrm.models.schemas import (
    ChannelPartner,
    ChannelPartnerOnboardRequest,
    MeetingLogRequest,
    MeetingLogResult,
    Sale,
    SaleRecordRequest,
)
from salescrm.services import records


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rms/{rm_id}")


@router.post("/channel-partners/onboard", response_model=ChannelPartner, status_code=201)
async def onboard_channel_partner(
    rm_id: str,
    request: ChannelPartnerOnboardRequest,
    store: StoreDep,
    now: NowDep,
) -> ChannelPartner:
    """
    Onboard a channel partner for the RM, dated today.

    Raises:
        HTTPException 404: If the RM does not exist.
    """
    try:
        return await records.onboard_channel_partner(store, rm_id, request, now.date())
    except StoreError as e:
        raise http_error_for(e) from e


@router.post("/meetings/log", response_model=MeetingLogResult, status_code=201)
async def log_meeting(
    rm_id: str,
    request: MeetingLogRequest,
    store: StoreDep,
    now: NowDep,
) -> MeetingLogResult:
    """
    Log a meeting. For a deal_win outcome the response also carries the sale.

    Raises:
        HTTPException 400: If the CP is not the RM's or a deal win lacks an amount.
        HTTPException 404: If the RM does not exist.
    """
    try:
        return await records.log_meeting(store, rm_id, request, now.date())
    except StoreError as e:
        raise http_error_for(e) from e


@router.post("/sales/record", response_model=Sale, status_code=201)
async def record_sale(
    rm_id: str,
    request: SaleRecordRequest,
    store: StoreDep,
    now: NowDep,
) -> Sale:
    """
    Record a sale for the RM.

    Raises:
        HTTPException 400: If the CP is not the RM's.
        HTTPException 404: If the RM does not exist.
    """
    try:
        return await records.record_sale(store, rm_id, request, now.date())
    except StoreError as e:
        raise http_error_for(e) from e
