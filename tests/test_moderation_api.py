"""
API tests for the moderation queue.
"""
from sqlalchemy import select

from spotmap.models import ModerationEntry, Spot


def queue_entry_for(run_db, content_id):
    async def load(session):
        rows = await session.execute(select(ModerationEntry).where(ModerationEntry.content_id == content_id))
        return rows.scalars().first()
    return run_db(load)


def test_queue_requires_moderator(client, make_user):
    """Test regular users are refused."""
    user = make_user()

    r = client.get("/moderation", headers=user.headers)

    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"
    assert client.get("/moderation").status_code == 401


def test_list_queue(client, make_user, create_spot):
    """Test pending submissions appear in the queue."""
    user, moderator = make_user(), make_user(role="moderator")
    create_spot(user)
    create_spot(user)

    r = client.get("/moderation", params={"status": "pending"}, headers=moderator.headers)

    assert r.status_code == 200
    data = r.json()
    assert data["pagination"]["total"] == 2
    assert {e["contentType"] for e in data["moderationQueue"]} == {"spot"}


def test_approve_spot(client, make_user, create_spot, run_db, get_row):
    """Test approving a queued spot publishes it."""
    user, moderator = make_user(), make_user(role="moderator")
    spot = create_spot(user)
    entry = queue_entry_for(run_db, spot["id"])

    r = client.put(
        f"/moderation/{entry.id}",
        json={"action": "approve", "feedback": "Looks great"},
        headers=moderator.headers,
    )

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "approved"
    assert body["message"] == "Content approved successfully"
    assert body["moderator"]["id"] == moderator.id
    assert get_row(Spot, spot["id"]).status == "approved"

    # now visible to everyone
    assert client.get(f"/spots/{spot['id']}").status_code == 200


def test_reject_spot(client, make_user, create_spot, run_db, get_row):
    """Test rejecting a queued spot records the feedback."""
    user, admin = make_user(), make_user(role="admin")
    spot = create_spot(user)
    entry = queue_entry_for(run_db, spot["id"])

    r = client.put(f"/moderation/{entry.id}", json={"action": "reject", "feedback": "Private road"}, headers=admin.headers)

    assert r.status_code == 200
    assert get_row(Spot, spot["id"]).status == "rejected"
    assert get_row(ModerationEntry, entry.id).feedback == "Private road"


def test_review_twice_is_rejected(client, make_user, create_spot, run_db, get_row):
    """Test an entry can only be reviewed once."""
    user, moderator = make_user(), make_user(role="moderator")
    spot = create_spot(user)
    entry = queue_entry_for(run_db, spot["id"])
    client.put(f"/moderation/{entry.id}", json={"action": "approve"}, headers=moderator.headers)

    r = client.put(f"/moderation/{entry.id}", json={"action": "reject"}, headers=moderator.headers)

    assert r.status_code == 400
    assert get_row(Spot, spot["id"]).status == "approved"


def test_review_invalid_action(client, make_user, create_spot, run_db):
    """Test unknown actions are rejected."""
    user, moderator = make_user(), make_user(role="moderator")
    spot = create_spot(user)
    entry = queue_entry_for(run_db, spot["id"])

    r = client.put(f"/moderation/{entry.id}", json={"action": "ban"}, headers=moderator.headers)

    assert r.status_code == 400


def test_enqueue_manually(client, make_user):
    """Test moderators can queue existing content once."""
    owner, moderator = make_user(), make_user(role="moderator")
    collection = client.post("/collections", json={"name": "Flagged", "isPublic": True}, headers=owner.headers).json()

    r = client.post(
        "/moderation",
        json={"contentType": "collection", "contentId": collection["id"]},
        headers=moderator.headers,
    )
    assert r.status_code == 201
    assert r.json()["status"] == "pending"

    again = client.post(
        "/moderation",
        json={"contentType": "collection", "contentId": collection["id"]},
        headers=moderator.headers,
    )
    assert again.status_code == 400
    assert again.json()["message"] == "Content is already in moderation queue"


def test_enqueue_missing_content(client, make_user):
    """Test queueing unknown content is not found."""
    moderator = make_user(role="moderator")

    r = client.post("/moderation", json={"contentType": "spot", "contentId": "nope"}, headers=moderator.headers)

    assert r.status_code == 404


def test_resubmission_does_not_duplicate_pending_entry(client, make_user, create_spot, run_db):
    """Test a spot waiting for review is queued only once."""
    user = make_user()
    spot = create_spot(user)

    client.post(f"/spots/{spot['id']}/submit", headers=user.headers)

    async def count(session):
        rows = await session.execute(select(ModerationEntry).where(ModerationEntry.content_id == spot["id"]))
        return len(rows.scalars().all())

    assert run_db(count) == 1


def test_get_entry(client, make_user, create_spot, run_db):
    """Test a single entry can be fetched."""
    user, moderator = make_user(), make_user(role="moderator")
    spot = create_spot(user)
    entry = queue_entry_for(run_db, spot["id"])

    r = client.get(f"/moderation/{entry.id}", headers=moderator.headers)

    assert r.status_code == 200
    assert r.json()["contentId"] == spot["id"]
    assert client.get("/moderation/missing", headers=moderator.headers).status_code == 404
