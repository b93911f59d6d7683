"""REST API router."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from wakegate.api.deps import get_gate, verify_api_key
from wakegate.api.schemas import (
    AlarmStatusResponse,
    HealthResponse,
    HoldResponse,
    ScheduleAlarmResponse,
    SubmitWorkRequest,
    SubmitWorkResponse,
)
from wakegate.engine import DispatchUnavailable, ResourceCreationError
from wakegate.models import Destination
from wakegate.observability.metrics import metrics
from wakegate.runtime import WakeGate

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])


# ============================================================================
# Health & status
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version="0.1.0")


@router.get("/hold", response_model=HoldResponse)
async def get_hold(gate: WakeGate = Depends(get_gate)):
    """Report the resource hold."""
    return HoldResponse(
        name=gate.hold.name,
        held=gate.hold.is_held(),
        reference_count=gate.hold.reference_count,
    )


@router.get("/metrics")
async def get_metrics():
    """Metrics snapshot."""
    return metrics.snapshot()


# ============================================================================
# Work
# ============================================================================


@router.post("/work", response_model=SubmitWorkResponse, status_code=202)
async def submit_work(
    request: SubmitWorkRequest,
    gate: WakeGate = Depends(get_gate),
):
    """
    Submit wakeful work.

    The hold is asserted before this returns. A symbolic destination that
    does not resolve is still dispatched; the executor reports the failure.
    """
    destination = Destination(
        handler=request.handler,
        action=request.action,
        categories=request.categories,
        extras=request.extras,
    )
    try:
        gate.submit(destination, request.payload)
    except DispatchUnavailable as e:
        raise HTTPException(status_code=503, detail=e.message)
    except ResourceCreationError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return SubmitWorkResponse(accepted=True, held=gate.hold.is_held())


# ============================================================================
# Alarms
# ============================================================================


@router.get("/alarms/{name}", response_model=AlarmStatusResponse)
async def get_alarm(name: str, gate: WakeGate = Depends(get_gate)):
    """Alarm status for a periodic task."""
    return AlarmStatusResponse(
        name=name,
        registered=gate.alarms.get_policy(name) is not None,
        pending=gate.timer.is_pending(name),
        last_alarm_at=await gate.alarms.last_alarm_at(name),
    )


@router.post("/alarms/{name}/schedule", response_model=ScheduleAlarmResponse)
async def schedule_alarm(
    name: str,
    force: bool = Query(True),
    gate: WakeGate = Depends(get_gate),
):
    """Arm a registered periodic task, unless fresh and not forced."""
    policy = gate.alarms.get_policy(name)
    if policy is None:
        raise HTTPException(status_code=404, detail=f"Alarm not registered: {name}")

    armed = await gate.alarms.schedule_alarms(policy, force=force)
    return ScheduleAlarmResponse(name=name, armed=armed)


@router.delete("/alarms/{name}", status_code=204)
async def cancel_alarm(name: str, gate: WakeGate = Depends(get_gate)):
    """Cancel a periodic task's pending alarm and clear its state."""
    await gate.alarms.cancel_alarms(name)
    return Response(status_code=204)
