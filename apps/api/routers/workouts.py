"""
Workouts Router

Manually logged workouts. Volume load is always derived from the sets;
(activity_type, timestamp) identifies a workout per user, so a repeated
submission returns the stored row instead of creating a second one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from core.auth import get_current_user_id
from core.database import get_db
from models import Workout
from schemas import WorkoutCreate, WorkoutCreatedResponse, WorkoutListResponse, WorkoutResponse
from services.ingestion_writer import write_workouts
from services.normalizers import WorkoutRecord, WorkoutSet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/workouts", tags=["workouts"])


@router.post("", response_model=WorkoutCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_workout(
    request: WorkoutCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    record = WorkoutRecord(
        user_id=user_id,
        timestamp=request.timestamp,
        activity_type=request.activity_type,
        duration_min=request.duration_min,
        sets=[WorkoutSet(exercise=s.exercise, reps=s.reps, weight=s.weight) for s in request.sets or []],
        rpe=request.rpe,
        meta={"source": "manual"},
    )
    result = write_workouts(db, [record])
    if result.failed:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log workout",
        )

    workout = (
        db.query(Workout)
        .filter(
            Workout.user_id == user_id,
            Workout.activity_type == record.activity_type,
            Workout.timestamp == record.timestamp,
        )
        .first()
    )
    if workout is None:
        # Should not happen: either we inserted it or it already existed
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log workout",
        )

    created = result.created > 0
    if not created:
        response.status_code = status.HTTP_200_OK
        logger.info(f"Workout already logged for user {user_id}: {record.activity_type} at {record.timestamp}")

    return WorkoutCreatedResponse(
        success=True,
        created=created,
        workout=WorkoutResponse.model_validate(workout),
    )


@router.get("", response_model=WorkoutListResponse)
def list_workouts(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    workouts = (
        db.query(Workout)
        .filter(Workout.user_id == user_id)
        .order_by(Workout.timestamp.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return WorkoutListResponse(workouts=[WorkoutResponse.model_validate(w) for w in workouts])
