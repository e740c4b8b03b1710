"""
API tests for collection endpoints.
"""
from spotmap.models import Collection


def create_collection(client, owner, **overrides):
    payload = {"name": "Alps trip", "isPublic": False}
    payload.update(overrides)
    r = client.post("/collections", json=payload, headers=owner.headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_collection_defaults(client, make_user):
    """Test a new collection is private and empty unless told otherwise."""
    owner = make_user()

    r = client.post("/collections", json={"name": "Favourites"}, headers=owner.headers)

    assert r.status_code == 201
    collection = r.json()
    assert collection["spotIds"] == []
    assert collection["isPublic"] is False
    assert collection["userId"] == owner.id


def test_create_collection_rejects_duplicate_spot_ids(client, make_user):
    """Test spotIds behaves as a set on create."""
    owner = make_user()

    r = client.post("/collections", json={"name": "Dupes", "spotIds": ["a", "a"]}, headers=owner.headers)

    assert r.status_code == 400


def test_private_collection_hidden_from_others(client, make_user):
    """Test a private collection is not found for anyone but owner and staff."""
    owner, other, moderator = make_user(), make_user(), make_user(role="moderator")
    collection = create_collection(client, owner)

    assert client.get(f"/collections/{collection['id']}", headers=other.headers).status_code == 404
    assert client.get(f"/collections/{collection['id']}").status_code == 404
    assert client.get(f"/collections/{collection['id']}", headers=owner.headers).status_code == 200
    assert client.get(f"/collections/{collection['id']}", headers=moderator.headers).status_code == 200


def test_public_collection_readable_anonymously(client, make_user):
    """Test public collections are readable without a session."""
    owner = make_user()
    collection = create_collection(client, owner, isPublic=True)

    r = client.get(f"/collections/{collection['id']}")

    assert r.status_code == 200
    assert r.json()["user"]["id"] == owner.id


def test_list_collections(client, make_user):
    """Test listing shows public collections plus the caller's own."""
    owner, other = make_user(), make_user()
    create_collection(client, owner, name="Mine private")
    create_collection(client, other, name="Theirs public", isPublic=True)
    create_collection(client, other, name="Theirs private")

    r = client.get("/collections", params={"sort": "name"}, headers=owner.headers)

    data = r.json()
    assert [c["name"] for c in data["collections"]] == ["Mine private", "Theirs public"]
    assert data["pagination"]["total"] == 2

    mine = client.get("/collections", params={"userId": owner.id}, headers=owner.headers).json()
    assert [c["name"] for c in mine["collections"]] == ["Mine private"]

    public = client.get("/collections", params={"isPublic": "true"}, headers=owner.headers).json()
    assert [c["name"] for c in public["collections"]] == ["Theirs public"]


def test_list_collections_requires_auth(client):
    """Test collection listing needs a session."""
    assert client.get("/collections").status_code == 401


def test_add_spot_to_collection(client, make_user, create_spot, get_row):
    """Test a visible spot can be added once."""
    owner = make_user()
    spot = create_spot(owner, status="approved")
    collection = create_collection(client, owner)

    r = client.post(f"/collections/{collection['id']}/spots", json={"spotId": spot["id"]}, headers=owner.headers)

    assert r.status_code == 200
    assert r.json()["spotIds"] == [spot["id"]]
    assert get_row(Collection, collection["id"]).spot_ids == [spot["id"]]


def test_add_duplicate_spot_is_rejected(client, make_user, create_spot, get_row):
    """Test adding a spot already present fails and leaves the list alone."""
    owner = make_user()
    spot = create_spot(owner, status="approved")
    collection = create_collection(client, owner, spotIds=[spot["id"]])

    r = client.post(f"/collections/{collection['id']}/spots", json={"spotId": spot["id"]}, headers=owner.headers)

    assert r.status_code == 400
    assert r.json()["message"] == "Spot is already in collection"
    assert get_row(Collection, collection["id"]).spot_ids == [spot["id"]]


def test_add_hidden_spot_is_not_found(client, make_user, create_spot):
    """Test someone else's hidden spot cannot be collected."""
    owner, other = make_user(), make_user()
    hidden = create_spot(other, visibility="private")
    collection = create_collection(client, owner)

    r = client.post(f"/collections/{collection['id']}/spots", json={"spotId": hidden["id"]}, headers=owner.headers)

    assert r.status_code == 404


def test_add_spot_to_someone_elses_collection(client, make_user, create_spot):
    """Test only the owner can change membership."""
    owner, other = make_user(), make_user()
    spot = create_spot(owner, status="approved")
    collection = create_collection(client, owner, isPublic=True)

    r = client.post(f"/collections/{collection['id']}/spots", json={"spotId": spot["id"]}, headers=other.headers)

    assert r.status_code == 403


def test_remove_spot_from_collection(client, make_user, create_spot, get_row):
    """Test removing a member keeps the order of the rest."""
    owner = make_user()
    spots = [create_spot(owner, status="approved", name=f"S{i}")["id"] for i in range(3)]
    collection = create_collection(client, owner, spotIds=spots)

    r = client.delete(
        f"/collections/{collection['id']}/spots",
        params={"spotId": spots[1]},
        headers=owner.headers,
    )

    assert r.status_code == 200
    assert get_row(Collection, collection["id"]).spot_ids == [spots[0], spots[2]]


def test_remove_spot_not_in_collection(client, make_user):
    """Test removing a non-member is rejected."""
    owner = make_user()
    collection = create_collection(client, owner)

    r = client.delete(f"/collections/{collection['id']}/spots", params={"spotId": "nope"}, headers=owner.headers)

    assert r.status_code == 400
    assert r.json()["message"] == "Spot is not in collection"


def test_update_collection(client, make_user, get_row):
    """Test owners can rename and publish; others cannot."""
    owner, other = make_user(), make_user()
    collection = create_collection(client, owner)

    assert client.put(
        f"/collections/{collection['id']}", json={"name": "Nope"}, headers=other.headers,
    ).status_code == 403

    r = client.put(
        f"/collections/{collection['id']}",
        json={"name": "Dolomites", "isPublic": True},
        headers=owner.headers,
    )

    assert r.status_code == 200
    row = get_row(Collection, collection["id"])
    assert row.name == "Dolomites"
    assert row.is_public is True


def test_update_collection_rejects_null_name(client, make_user):
    """Test NOT NULL fields cannot be cleared."""
    owner = make_user()
    collection = create_collection(client, owner)

    r = client.put(f"/collections/{collection['id']}", json={"name": None}, headers=owner.headers)

    assert r.status_code == 400


def test_delete_collection(client, make_user, get_row):
    """Test deletion by owner."""
    owner, other = make_user(), make_user()
    collection = create_collection(client, owner, isPublic=True)

    assert client.delete(f"/collections/{collection['id']}", headers=other.headers).status_code == 403

    r = client.delete(f"/collections/{collection['id']}", headers=owner.headers)

    assert r.status_code == 200
    assert get_row(Collection, collection["id"]) is None
