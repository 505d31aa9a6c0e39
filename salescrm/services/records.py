"""
Record workflows for the RM-facing forms.

Each workflow turns a submitted form into the record(s) written to the store,
applying the same defaults the front end relies on:

- onboard_channel_partner: stamps owner, onboarding date and document status
- log_meeting: derives the meeting status and, for a deal win, creates the
  linked Sale in the same call
- record_sale: resolves "others" choices and normalises numeric fields

The acting RM is passed explicitly; these functions never read session state.
"""

import logging
import math
from datetime import date
from typing import Any, Dict, Optional

from salescrm.core.store import CollectionStore, RecordNotFoundError, StoreError
from salescrm.models.enums import Collection, MeetingOutcome, MeetingStatus
from salescrm.models.schemas import (
    ChannelPartner,
    ChannelPartnerOnboardRequest,
    Meeting,
    MeetingLogRequest,
    MeetingLogResult,
    Sale,
    SaleRecordRequest,
)


logger = logging.getLogger(__name__)

OTHERS_CHOICE: str = "others"


class RecordValidationError(StoreError):
    """A submitted form is inconsistent with the stored records."""


# =============================================================================
# Field Normalisation
# =============================================================================


def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """parseFloat-style coercion: blanks, garbage, NaN and infinities become `default`."""
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def to_int(value: Any, default: int) -> int:
    number = to_float(value, default=None)
    return default if number is None else int(number)


def resolve_choice(choice: Optional[str], manual: Optional[str]) -> Optional[str]:
    """A select value of "others" is replaced by the free-text field."""
    if choice == OTHERS_CHOICE:
        return manual
    return choice


# =============================================================================
# Ownership Checks
# =============================================================================


async def _require_rm(store: CollectionStore, rm_id: str) -> Dict[str, Any]:
    return await store.get(Collection.RMS.value, rm_id)


async def _require_owned_cp(store: CollectionStore, rm_id: str, cp_id: Optional[str]) -> None:
    if not cp_id:
        return
    try:
        cp = ChannelPartner.model_validate(await store.get(Collection.CHANNEL_PARTNERS.value, cp_id))
    except RecordNotFoundError:
        raise RecordValidationError(f"Channel partner {cp_id} does not exist") from None
    if cp.rm_id != rm_id:
        raise RecordValidationError(f"Channel partner {cp_id} does not belong to RM {rm_id}")


# =============================================================================
# Workflows
# =============================================================================


async def onboard_channel_partner(
    store: CollectionStore,
    rm_id: str,
    request: ChannelPartnerOnboardRequest,
    today: date,
) -> ChannelPartner:
    """
    Create a channel partner owned by `rm_id`, onboarded `today`.

    Raises:
        RecordNotFoundError: If the RM does not exist.
    """
    await _require_rm(store, rm_id)

    payload = request.model_dump()
    payload.update(
        rm_id=rm_id,
        expected_monthly_business=to_float(request.expected_monthly_business),
        onboard_date=today.isoformat(),
        status="active",
        documents_submitted=bool(
            request.pan_filename
            or request.aadhar_filename
            or request.pan_number
            or request.aadhar_number
        ),
    )

    record = await store.create(Collection.CHANNEL_PARTNERS.value, payload)
    logger.info(f"RM {rm_id} onboarded channel partner {record.get('id')}")
    return ChannelPartner.model_validate(record)


async def log_meeting(
    store: CollectionStore,
    rm_id: str,
    request: MeetingLogRequest,
    today: date,
) -> MeetingLogResult:
    """
    Log a meeting for `rm_id`.

    A follow_up outcome leaves the meeting follow_up_pending and stores the
    follow-up timestamp when both date and time are given. A deal_win outcome
    also records a Sale dated `today` and linked by meeting_id.

    Raises:
        RecordNotFoundError: If the RM does not exist.
        RecordValidationError: If the CP is unknown or owned by another RM,
            or a deal win has no sale amount.
    """
    await _require_rm(store, rm_id)
    await _require_owned_cp(store, rm_id, request.cp_id)

    deal = request.deal
    if request.outcome is MeetingOutcome.DEAL_WIN and (deal is None or deal.sale_amount is None):
        raise RecordValidationError("A deal win needs the deal details with a sale amount")

    is_follow_up = request.outcome is MeetingOutcome.FOLLOW_UP
    meeting_payload: Dict[str, Any] = {
        "rm_id": rm_id,
        "cp_id": request.cp_id,
        "meeting_type": request.meeting_type.value,
        "meeting_date": request.meeting_date,
        "outcome": request.outcome.value,
        "notes": request.notes,
        "status": (MeetingStatus.FOLLOW_UP_PENDING if is_follow_up else MeetingStatus.COMPLETED).value,
    }
    if is_follow_up and request.follow_up_date and request.follow_up_time:
        meeting_payload["follow_up_date"] = f"{request.follow_up_date}T{request.follow_up_time}"
        meeting_payload["follow_up_notes"] = request.follow_up_notes

    meeting = Meeting.model_validate(await store.create(Collection.MEETINGS.value, meeting_payload))
    logger.info(f"RM {rm_id} logged meeting {meeting.id} ({request.outcome.value})")

    sale = None
    if request.outcome is MeetingOutcome.DEAL_WIN:
        sale_payload = deal.model_dump()
        sale_payload.update(
            rm_id=rm_id,
            cp_id=request.cp_id,
            meeting_id=meeting.id,
            sale_date=today.isoformat(),
            status="completed",
        )
        sale = Sale.model_validate(await store.create(Collection.SALES.value, sale_payload))
        logger.info(f"Meeting {meeting.id} closed as sale {sale.id}")

    return MeetingLogResult(meeting=meeting, sale=sale)


async def record_sale(
    store: CollectionStore,
    rm_id: str,
    request: SaleRecordRequest,
    today: date,
) -> Sale:
    """
    Record a sale for `rm_id`.

    Raises:
        RecordNotFoundError: If the RM does not exist.
        RecordValidationError: If the CP is unknown or owned by another RM.
    """
    await _require_rm(store, rm_id)
    await _require_owned_cp(store, rm_id, request.cp_id)

    sale_date = request.sale_date or today.isoformat()
    payload = request.model_dump()
    payload.update(
        rm_id=rm_id,
        sale_date=sale_date,
        project_name=resolve_choice(request.project_name, request.manual_project),
        unit_type=resolve_choice(request.unit_type, request.manual_unit_type),
        payment_plan=resolve_choice(request.payment_plan, request.manual_payment_plan),
        sale_amount=to_float(request.sale_amount),
        booking_amount=to_float(request.booking_amount),
        commission_amount=to_float(request.commission_amount),
        number_of_plots=to_int(request.number_of_plots, default=1),
        payment_date=request.payment_date or sale_date,
        status="completed",
    )

    sale = Sale.model_validate(await store.create(Collection.SALES.value, payload))
    logger.info(f"RM {rm_id} recorded sale {sale.id} of {sale.sale_amount}")
    return sale
