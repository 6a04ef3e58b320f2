"""API routes for form A/B tests."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from formlab.domains.experiments import (
    ABTestStatus,
    CreateABTestRequest,
    ExperimentEngine,
    MetricsUpdate,
    get_engine,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/tests", tags=["ab-tests"])


def _not_found(test_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"error": "test_not_found", "test_id": test_id})


def _dump(model: Any) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.post("", status_code=201)
async def create_test_endpoint(
    request: CreateABTestRequest,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Create a new draft test."""
    test = engine.create_test(request)
    return _dump(test)


@router.get("")
async def list_tests_endpoint(
    status: ABTestStatus | None = Query(None),
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """List tests, optionally filtered by status."""
    tests = engine.list_tests(status)
    return {"tests": [_dump(t) for t in tests], "count": len(tests)}


@router.get("/{test_id}")
async def get_test_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    test = engine.get_test_results(test_id)
    if test is None:
        raise _not_found(test_id)
    return _dump(test)


@router.delete("/{test_id}")
async def delete_test_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Delete a test and purge its user assignments."""
    if not engine.delete_test(test_id):
        raise _not_found(test_id)
    return {"deleted": True, "test_id": test_id}


def _transition(engine: ExperimentEngine, test_id: str, action: str) -> dict:
    transitions = {
        "start": engine.start_test,
        "pause": engine.pause_test,
        "stop": engine.stop_test,
    }
    test = engine.get_test_results(test_id)
    if test is None:
        raise _not_found(test_id)
    if not transitions[action](test_id):
        raise HTTPException(
            status_code=409,
            detail={"error": "invalid_state_transition", "status": test.status, "action": action},
        )
    return _dump(engine.get_test_results(test_id))


@router.put("/{test_id}/start")
async def start_test_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Start a test (draft/paused -> running)."""
    return _transition(engine, test_id, "start")


@router.put("/{test_id}/pause")
async def pause_test_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Pause a running test."""
    return _transition(engine, test_id, "pause")


@router.put("/{test_id}/stop")
async def stop_test_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Stop a test and mark it completed."""
    return _transition(engine, test_id, "stop")


@router.put("/{test_id}/traffic-split")
async def update_traffic_split_endpoint(
    test_id: str,
    traffic_split: list[float] = Body(..., embed=True, alias="trafficSplit"),
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Replace the traffic split. Users already assigned keep their variant."""
    test = engine.update_traffic_split(test_id, traffic_split)
    if test is None:
        raise _not_found(test_id)
    return _dump(test)


@router.get("/{test_id}/assignment/{user_id}")
async def assignment_endpoint(
    test_id: str,
    user_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Assign (or look up) the user's variant. variantId is null unless the test runs."""
    if engine.get_test_results(test_id) is None:
        raise _not_found(test_id)
    return {
        "testId": test_id,
        "userId": user_id,
        "variantId": engine.get_variant_for_user(test_id, user_id),
    }


@router.post("/{test_id}/render/{user_id}")
async def render_endpoint(
    test_id: str,
    user_id: str,
    document: dict[str, Any] = Body(...),
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Render the user's variant of the posted base document."""
    if engine.get_test_results(test_id) is None:
        raise _not_found(test_id)
    variant_id, rendered = engine.render_for_user(test_id, user_id, document)
    return {"testId": test_id, "userId": user_id, "variantId": variant_id, "document": rendered}


@router.post("/{test_id}/events")
async def record_event_endpoint(
    test_id: str,
    metrics: MetricsUpdate,
    variant_id: str = Query(..., alias="variantId"),
    user_id: str | None = Query(None, alias="userId"),
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    """Fold a metrics event into the variant's results."""
    result = engine.record_event(test_id, variant_id, metrics, user_id=user_id)
    if result is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "variant_not_found", "test_id": test_id, "variant_id": variant_id},
        )
    test = engine.get_test_results(test_id)
    return {
        "result": _dump(result),
        "status": test.status if test else None,
        "confidence": test.confidence if test else None,
        "winner": test.winner if test else None,
    }


@router.get("/{test_id}/export")
async def export_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> dict:
    exported = engine.export_results(test_id)
    if exported is None:
        raise _not_found(test_id)
    return exported


@router.get("/{test_id}/report", response_class=PlainTextResponse)
async def report_endpoint(
    test_id: str,
    engine: ExperimentEngine = Depends(get_engine),
) -> str:
    return engine.generate_report(test_id)
