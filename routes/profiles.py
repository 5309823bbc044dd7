from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy import or_

from models.Profile import Profile
from schemas import ProfileWrite, ProfileRead, FCMTokenUpdate
from database import get_db

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(payload: ProfileWrite, db: Session = Depends(get_db)):
    exists = db.query(Profile).filter(
        or_(Profile.id == payload.id, Profile.email == payload.email)
    ).first()
    if exists:
        raise HTTPException(status_code=409, detail="A profile with this id or email already exists")

    profile = Profile(id=payload.id, email=payload.email, full_name=payload.full_name)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@router.get("/{profile_id}", response_model=ProfileRead)
def get_profile(profile_id: str, db: Session = Depends(get_db)):
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/{profile_id}/fcm-token", status_code=status.HTTP_204_NO_CONTENT)
def update_fcm_token(profile_id: str, payload: FCMTokenUpdate, db: Session = Depends(get_db)):
    """Register (or clear) the device token used for push notifications."""
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    profile.fcm_token = payload.fcm_token or None
    db.commit()
