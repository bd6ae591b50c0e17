# file: HIVE/EVENTS/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from HIVE.core.config import TRANSITION_RATE_LIMIT
from HIVE.core.firebase import get_firestore
from HIVE.core.rate_limit import limiter
from HIVE.core.security import get_current_admin, get_current_caller
from .lifecycle import transition_event_state, update_event_states
from .models import TransitionRequest, TransitionResponse

logger = logging.getLogger("events.routes")

router = APIRouter(prefix="/events", tags=["Events"])


# ============================================================
# 🔹 MANUAL STATE TRANSITION (creator / admin)
# ============================================================
async def _read_transition_request(request: Request) -> TransitionRequest:
    # A missing or unreadable body reaches the transition as empty fields
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}
    return TransitionRequest.model_validate(body)


@router.post("/transition", response_model=TransitionResponse)
@limiter.limit(TRANSITION_RATE_LIMIT)
async def transition_event(
    request: Request,
    caller: Optional[dict] = Depends(get_current_caller),
    db=Depends(get_firestore),
):
    """Move an event to another lifecycle state, subject to role checks."""
    req = await _read_transition_request(request)
    return transition_event_state(caller, req.eventId, req.targetState, db=db)


# ============================================================
# 🔹 ADVANCER (manual trigger, admin only)
# ============================================================
@router.post("/lifecycle/run")
async def run_lifecycle_advancer(
    current_admin: dict = Depends(get_current_admin),
    db=Depends(get_firestore),
):
    """Run the scheduled state advancer once, outside its normal cadence."""
    logger.info("[LIFECYCLE] Manual advancer run requested by %s", current_admin.get("user_id"))
    counts = update_event_states(db=db)
    return {"ok": True, "updated": sum(counts.values()), "counts": counts}
