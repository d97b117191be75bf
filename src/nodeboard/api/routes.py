"""API route handlers for the dashboard."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse

from nodeboard.api.models import (
    ActionRequest,
    ActionResponse,
    ActionResultData,
    AffordanceData,
    DashboardData,
    DashboardResponse,
    MinipoolData,
    MinipoolResponse,
    NodeInfoResponse,
    StakingPoolResponse,
)
from nodeboard.models.node import ActionResult
from nodeboard.models.status import SourceName
from nodeboard.services.actions import ACTIONS, ActionSubmitter
from nodeboard.services.minipool_parser import summarize_minipools
from nodeboard.services.orchestrator import PollingOrchestrator
from nodeboard.services.plugin_client import PluginClientError

router = APIRouter(prefix="/api/v1.0")
logger = logging.getLogger("nodeboard.api")


def _orchestrator(request: Request) -> PollingOrchestrator:
    return request.app.state.orchestrator


def _submitter(request: Request) -> ActionSubmitter:
    return request.app.state.submitter


def _envelope(code: int, msg: str, data=None) -> JSONResponse:
    # HTTP status is always 200, the real status is in "code"
    return JSONResponse(status_code=200, content={"code": code, "msg": msg, "data": data})


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(request: Request):
    """GET /api/v1.0/dashboard - Derived node state and current source values.

    Response format:
        {
            "code": 200,
            "msg": "success",
            "data": {
                "state": "syncing",
                "node_state": "Running",
                "sync_progress": {"is_synced": false, "execution_progress": 42.0, ...},
                "enablement": {"status": true, "sync_progress": true, "minipools": false, ...},
                "affordances": {"can_stop": true, "can_resync": true, ...},
                ...
            }
        }
    """
    orchestrator = _orchestrator(request)
    snapshot = orchestrator.snapshot()
    decision = orchestrator.decision

    data = DashboardData(
        state=decision.state,
        node_state=snapshot.status.node_state if snapshot.status else None,
        status=snapshot.status,
        wallet=snapshot.wallet,
        sync_progress=snapshot.sync_progress,
        enablement={name.value: enabled for name, enabled in decision.enablement.items()},
        affordances=AffordanceData(**asdict(decision.affordances)),
        sources=orchestrator.source_info(),
    )
    response = DashboardResponse(data=data)
    return JSONResponse(status_code=200, content=response.model_dump(mode="json"))


@router.get("/minipools", response_model=MinipoolResponse)
async def get_minipools(request: Request):
    """GET /api/v1.0/minipools - Parsed minipools with node totals.

    ``available`` is false while the node is not running, registered and
    synced; records are then empty.
    """
    records = _orchestrator(request).latest(SourceName.MINIPOOLS)
    data = MinipoolData(
        available=records is not None,
        records=records or [],
        summary=summarize_minipools(records or []),
    )
    return JSONResponse(
        status_code=200, content=MinipoolResponse(data=data).model_dump(mode="json")
    )


@router.get("/pools", response_model=StakingPoolResponse)
async def get_staking_pools(request: Request):
    """GET /api/v1.0/pools - Staking pools (empty list means "no pools available")."""
    pools = _orchestrator(request).latest(SourceName.STAKING_POOLS) or []
    return JSONResponse(
        status_code=200, content=StakingPoolResponse(data=pools).model_dump(mode="json")
    )


@router.get("/node", response_model=NodeInfoResponse)
async def get_node_info(request: Request):
    """GET /api/v1.0/node - RPC URL and wallet balances of the running node."""
    info = _orchestrator(request).latest(SourceName.NODE_INFO)
    return JSONResponse(
        status_code=200, content=NodeInfoResponse(data=info).model_dump(mode="json")
    )


@router.post("/actions/{action}", response_model=ActionResponse)
async def post_action(
    action: str,
    request: Request,
    background_tasks: BackgroundTasks,
    body: Optional[ActionRequest] = None,
):
    """POST /api/v1.0/actions/{action} - Submit a node or pool action.

    Returns:
        code 200 with the action result, 400 for unknown actions or bad
        payloads, 409 if an action for the same target is still pending,
        502 if the backend call failed.
    """
    if action not in ACTIONS:
        return _envelope(400, f"Unknown action: {action}")

    body = body or ActionRequest()
    submitter = _submitter(request)
    target = ActionSubmitter.target_of(action, {"address": body.address} if body.address else None)
    if submitter.is_pending(target):
        return _envelope(409, f"Action already in progress for {target}")

    try:
        result = await _dispatch(submitter, action, body)
    except ValueError as e:
        return _envelope(400, str(e))
    except PluginClientError as e:
        logger.warning(f"Action {action} could not reach the backend: {e}")
        return _envelope(502, str(e))

    # pick up the new node state without waiting for the next status tick
    background_tasks.add_task(_refresh_status, _orchestrator(request))

    data = ActionResultData(succeeded=result.succeeded, std_out=result.std_out)
    msg = "success" if result.succeeded else "Action failed"
    return _envelope(200, msg, data.model_dump(mode="json"))


async def _dispatch(submitter: ActionSubmitter, action: str, body: ActionRequest) -> ActionResult:
    if action in ("stake", "unstake"):
        if body.amount is None or body.address is None:
            raise ValueError(f"{action} requires amount and address")
        send = submitter.stake if action == "stake" else submitter.unstake
        return await send(body.amount, body.address)
    if action == "reward":
        if body.address is None:
            raise ValueError("reward requires address")
        return await submitter.claim_reward(body.address)
    if action == "resync":
        return await submitter.resync(execution=body.execution, consensus=body.consensus)
    return await submitter.submit(action)


async def _refresh_status(orchestrator: PollingOrchestrator) -> None:
    """Background task: poll status right after an action."""
    await orchestrator.refresh(SourceName.STATUS)
