"""API tests for profiles and groups."""

import logging
from pathlib import Path

from conftest import make_profile, make_group
from models import GroupMember, Profile


def test_create_profile_and_reject_duplicates(client):
    r = client.post("/profiles/", json={"id": "alice", "email": "alice@example.com", "full_name": "Alice"})
    assert r.status_code == 201, r.text
    assert r.json()["full_name"] == "Alice"

    assert client.post("/profiles/", json={"id": "alice", "email": "other@example.com"}).status_code == 409
    assert client.post("/profiles/", json={"id": "other", "email": "alice@example.com"}).status_code == 409
    assert client.post("/profiles/", json={"id": "bad", "email": "not-an-email"}).status_code == 422

    assert client.get("/profiles/alice").json()["email"] == "alice@example.com"
    assert client.get("/profiles/nobody").status_code == 404


def test_register_and_clear_push_token(client, db):
    make_profile(db, "alice")

    assert client.put("/profiles/alice/fcm-token", json={"fcm_token": "device-1"}).status_code == 204
    db.expire_all()
    assert db.get(Profile, "alice").fcm_token == "device-1"

    client.put("/profiles/alice/fcm-token", json={"fcm_token": ""})
    db.expire_all()
    assert db.get(Profile, "alice").fcm_token is None


def test_create_group_adds_creator_with_join_code(client, db):
    make_profile(db, "alice")

    r = client.post("/groups/", json={"group_name": " Weekend Crew ", "created_by": "alice"})
    assert r.status_code == 201, r.text
    group = r.json()
    assert group["group_name"] == "Weekend Crew"
    assert len(group["join_code"]) == 8
    assert group["join_code"].isalnum()

    members = client.get(f"/groups/{group['group_id']}/members").json()
    assert [m["user_id"] for m in members] == ["alice"]

    assert client.post("/groups/", json={"group_name": "Ghosts", "created_by": "nobody"}).status_code == 404


def test_join_by_code_notifies_everyone_but_the_joiner(client, db, outbox):
    alice = make_profile(db, "alice", fcm_token="tok-alice")
    bob = make_profile(db, "bob")
    make_profile(db, "cara", "Cara")
    group = make_group(db, alice, [bob], join_code="Trip2025")

    r = client.post("/groups/join-by-code", params={"user_id": "cara"}, json={"code": " Trip2025 "})
    assert r.status_code == 200, r.text
    assert r.json() == {"ok": True, "group_id": group.group_id, "notified": 2}

    assert outbox.subjects() == ["Cara joined Weekend Crew"]
    assert sorted(outbox.emails[0]["to"]) == ["alice@example.com", "bob@example.com"]
    assert outbox.pushes[0]["tokens"] == ["tok-alice"]
    assert db.query(GroupMember).filter_by(group_id=group.group_id).count() == 3


def test_join_by_code_rejects_malformed_and_unknown_codes(client, db):
    alice = make_profile(db, "alice")
    make_profile(db, "bob")
    make_group(db, alice)

    for code in ("short", "ABCD-123", "ABCD12345"):
        r = client.post("/groups/join-by-code", params={"user_id": "bob"}, json={"code": code})
        assert r.status_code == 400, code
        assert r.json()["detail"] == "Invalid join code"

    r = client.post("/groups/join-by-code", params={"user_id": "bob"}, json={"code": "ZZZZ9999"})
    assert r.status_code == 404


def test_joining_twice_is_a_conflict(client, db, outbox):
    alice = make_profile(db, "alice")
    bob = make_profile(db, "bob")
    group = make_group(db, alice, [bob])

    r = client.post(f"/groups/{group.group_id}/join", params={"user_id": "bob"})
    assert r.status_code == 409
    assert outbox.emails == []


def test_group_join_succeeds_when_notification_fails(client, db, outbox):
    alice = make_profile(db, "alice")
    make_profile(db, "bob")
    group = make_group(db, alice)
    outbox.fail_when = lambda message: True

    r = client.post(f"/groups/{group.group_id}/join", params={"user_id": "bob"})
    assert r.status_code == 200
    assert r.json()["notified"] == 0
    assert db.query(GroupMember).filter_by(group_id=group.group_id, user_id="bob").count() == 1


def test_api_log_is_written_outside_the_project(client):
    project_root = Path(__file__).resolve().parent.parent
    log_files = [Path(h.baseFilename) for h in logging.getLogger("grouptrip.api").handlers
                 if hasattr(h, "baseFilename")]

    assert log_files
    assert all(project_root not in path.parents for path in log_files)
