from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from schemas import JobRequest, JobReport
from database import get_db
from services.lifecycle import scan_and_notify
from utils.dates import parse_target_date

router = APIRouter(prefix="/jobs", tags=["Scheduled Jobs"])

# Cron hits these with GET; POST {"date": "YYYY-MM-DD"} (or ?date=) replays a given day.


def _run(db: Session, date_value: Optional[str], payload: Optional[JobRequest], kinds=None) -> dict:
    if payload is not None and payload.date:
        date_value = payload.date
    try:
        target_date = parse_target_date(date_value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, **scan_and_notify(db, target_date, kinds)}


@router.api_route("/run-all", methods=["GET", "POST"], response_model=JobReport)
def run_all(
    date: Optional[str] = Query(None),
    payload: Optional[JobRequest] = Body(None),
    db: Session = Depends(get_db)
):
    return _run(db, date, payload)


@router.api_route("/run-deadline-digest", methods=["GET", "POST"], response_model=JobReport)
def run_deadline_digest(
    date: Optional[str] = Query(None),
    payload: Optional[JobRequest] = Body(None),
    db: Session = Depends(get_db)
):
    return _run(db, date, payload, ["deadline"])


@router.api_route("/run-start-reminder", methods=["GET", "POST"], response_model=JobReport)
def run_start_reminder(
    date: Optional[str] = Query(None),
    payload: Optional[JobRequest] = Body(None),
    db: Session = Depends(get_db)
):
    return _run(db, date, payload, ["start"])


@router.api_route("/run-vote-close-digest", methods=["GET", "POST"], response_model=JobReport)
def run_vote_close_digest(
    date: Optional[str] = Query(None),
    payload: Optional[JobRequest] = Body(None),
    db: Session = Depends(get_db)
):
    return _run(db, date, payload, ["vote"])
