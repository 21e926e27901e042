"""Planning endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status

from ...persistence.filesystem import FileStorage
from ...schemas.planning import (
    PlanRequestModel,
    PlanResponseModel,
    TourGroupResponseModel,
    TourPlanRequestModel,
)
from ...services.outputs.planning_formatter import planning_result_to_json
from ...services.routing.errors import ConstraintMappingError, InvalidInput
from ...services.routing.models import PlanningResult
from ...services.routing.planner import plan
from ...services.routing.tours import plan_tour_group

logger = logging.getLogger(__name__)

router = APIRouter(tags=["planning"])


def _persist(result: PlanningResult, prefix: str) -> None:
    try:
        FileStorage().save_plan(result, prefix=prefix)
    except OSError as exc:
        # Artifacts are a convenience copy; the plan itself is still returned.
        logger.error(f"Failed to write planning artifacts: {exc}")


@router.post("/plan", response_model=PlanResponseModel, status_code=status.HTTP_200_OK)
def create_plan(payload: PlanRequestModel) -> PlanResponseModel:
    try:
        result = plan(payload.to_planning_request())
    except InvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConstraintMappingError as exc:
        logger.exception(f"Waypoint mapping failed: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to map optimized order back to stops: {exc}",
        ) from exc
    except Exception as exc:
        logger.exception(f"Error planning route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan route: {str(exc)}",
        ) from exc

    if payload.persist:
        _persist(result, prefix="plan")
    return PlanResponseModel(**planning_result_to_json(result))


@router.post(
    "/vehicles/{vehicle_id}/tours/plan",
    response_model=TourGroupResponseModel,
    status_code=status.HTTP_200_OK,
)
def plan_vehicle_tours(vehicle_id: str, payload: Optional[TourPlanRequestModel] = None) -> TourGroupResponseModel:
    """Plan each tour assigned to a vehicle independently."""
    payload = payload or TourPlanRequestModel()
    try:
        results = plan_tour_group(
            vehicle_id,
            departure_time=payload.departure_time,
            keep_order=payload.keep_order,
        )
    except InvalidInput as exc:
        if exc.field == "vehicle_id":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        logger.error(f"Assignments data unavailable: {exc}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error planning tours for vehicle {vehicle_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan tours: {str(exc)}",
        ) from exc

    return TourGroupResponseModel(
        vehicle_id=vehicle_id,
        tours={
            tour_number: PlanResponseModel(**planning_result_to_json(result))
            for tour_number, result in results.items()
        },
    )
