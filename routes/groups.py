import logging
import re
import secrets
import string
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from models.Group import Group
from models.GroupMember import GroupMember
from models.Profile import Profile
from schemas import GroupWrite, GroupRead, GroupMemberRead, JoinByCode, GroupJoinResult
from database import get_db
from services.notifications import notify_group_joined

logger = logging.getLogger("grouptrip.groups")

router = APIRouter(prefix="/groups", tags=["Groups"])

JOIN_CODE_ALPHABET = string.ascii_letters + string.digits
JOIN_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{8}$")


def _new_join_code(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(8))
        if not db.query(Group).filter(Group.join_code == code).first():
            return code


def _get_profile_or_404(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


def _join_group(db: Session, group: Group, profile: Profile) -> GroupJoinResult:
    exists = db.query(GroupMember).filter_by(group_id=group.group_id, user_id=profile.id).first()
    if exists:
        raise HTTPException(status_code=409, detail="You are already a member of this group")

    db.add(GroupMember(group_id=group.group_id, user_id=profile.id))
    db.commit()

    notified = 0
    try:
        notified = notify_group_joined(db, group.group_id, profile, exclude_self=True)["sent"]
    except Exception:
        logger.exception("Group joined notification failed for group %s", group.group_id)
    return GroupJoinResult(group_id=group.group_id, notified=notified)


@router.post("/", response_model=GroupRead, status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupWrite, db: Session = Depends(get_db)):
    creator = _get_profile_or_404(db, payload.created_by)

    group = Group(
        group_name=payload.group_name.strip(),
        join_code=_new_join_code(db),
        created_by=creator.id,
    )
    db.add(group)
    db.flush()
    db.add(GroupMember(group_id=group.group_id, user_id=creator.id))
    db.commit()
    db.refresh(group)
    return group


@router.get("/{group_id}", response_model=GroupRead)
def get_group(group_id: int, db: Session = Depends(get_db)):
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


@router.get("/{group_id}/members", response_model=List[GroupMemberRead])
def list_group_members(group_id: int, db: Session = Depends(get_db)):
    if not db.query(Group).filter(Group.group_id == group_id).first():
        raise HTTPException(status_code=404, detail="Group not found")

    members = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
        .all()
    )
    return [
        {
            "user_id": m.user_id,
            "email": m.profile.email if m.profile else None,
            "full_name": m.profile.full_name if m.profile else None,
            "joined_at": m.joined_at,
        }
        for m in members
    ]


@router.post("/join-by-code", response_model=GroupJoinResult)
def join_group_by_code(
    payload: JoinByCode,
    user_id: str = Query(..., description="Profile joining the group"),  # In production, take from the auth token
    db: Session = Depends(get_db)
):
    code = payload.code.strip()
    if not JOIN_CODE_PATTERN.match(code):
        raise HTTPException(status_code=400, detail="Invalid join code")

    profile = _get_profile_or_404(db, user_id)
    group = db.query(Group).filter(Group.join_code == code).first()
    if not group:
        raise HTTPException(status_code=404, detail="No group uses this join code")
    return _join_group(db, group, profile)


@router.post("/{group_id}/join", response_model=GroupJoinResult)
def join_group(
    group_id: int,
    user_id: str = Query(..., description="Profile joining the group"),  # In production, take from the auth token
    db: Session = Depends(get_db)
):
    profile = _get_profile_or_404(db, user_id)
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return _join_group(db, group, profile)
