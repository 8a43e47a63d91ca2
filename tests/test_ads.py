"""
Ad endpoint tests — create with image upload, read, partial update, image
replacement, delete, and the owner-or-admin route guard.
"""
import json

import pytest
from httpx import AsyncClient

from app.models import Role


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AD = {"title": "Road bike", "description": "Barely used, 21 gears", "price": 15000}


async def _create_ad(client: AsyncClient, auth, png_bytes: bytes, **overrides) -> dict:
    properties = {**AD, **overrides}
    resp = await client.post(
        "/ads",
        data={"properties": json.dumps(properties)},
        files={"image": ("bike.png", png_bytes, "image/png")},
        auth=auth,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_ad(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    ad = await _create_ad(async_client, auth, png_bytes)
    assert ad["title"] == "Road bike"
    assert ad["price"] == 15000
    assert ad["image"] == f"/ads/{ad['pk']}/image"
    assert "author" in ad

    resp = await async_client.get(f"/ads/{ad['pk']}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["authorFirstName"] == "Ivan"
    assert detail["authorLastName"] == "Petrov"
    assert detail["email"] == "alice@example.com"
    assert detail["description"] == "Barely used, 21 gears"

    image = await async_client.get(ad["image"])
    assert image.status_code == 200
    assert image.content == png_bytes
    assert image.headers["content-type"] == "image/png"


@pytest.mark.asyncio
async def test_create_requires_credentials(async_client: AsyncClient, png_bytes):
    resp = await async_client.post(
        "/ads",
        data={"properties": json.dumps(AD)},
        files={"image": ("bike.png", png_bytes, "image/png")},
    )
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"
    assert resp.headers["www-authenticate"] == "Basic"


@pytest.mark.asyncio
async def test_create_with_wrong_password(async_client: AsyncClient, make_user, png_bytes):
    email, _ = await make_user("alice@example.com")
    resp = await async_client.post(
        "/ads",
        data={"properties": json.dumps(AD)},
        files={"image": ("bike.png", png_bytes, "image/png")},
        auth=(email, "wrong-password"),
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_without_image_is_400(async_client: AsyncClient, make_user):
    auth = await make_user("alice@example.com")
    resp = await async_client.post("/ads", data={"properties": json.dumps(AD)}, auth=auth)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_create_with_short_title_is_400(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    resp = await async_client.post(
        "/ads",
        data={"properties": json.dumps({**AD, "title": "Bik"})},
        files={"image": ("bike.png", png_bytes, "image/png")},
        auth=auth,
    )
    assert resp.status_code == 400
    assert "Title" in resp.json()["error"]["message"]


@pytest.mark.asyncio
async def test_create_with_malformed_properties_is_400(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    resp = await async_client.post(
        "/ads",
        data={"properties": "{not json"},
        files={"image": ("bike.png", png_bytes, "image/png")},
        auth=auth,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_missing_ad_is_404(async_client: AsyncClient):
    resp = await async_client.get("/ads/999")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_list_all_and_mine(async_client: AsyncClient, make_user, png_bytes):
    alice = await make_user("alice@example.com")
    bob = await make_user("bob@example.com")
    await _create_ad(async_client, alice, png_bytes, title="Bike")
    await _create_ad(async_client, bob, png_bytes, title="Sofa")

    resp = await async_client.get("/ads")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert [a["title"] for a in body["results"]] == ["Bike", "Sofa"]

    resp = await async_client.get("/ads/me", auth=bob)
    assert resp.json()["count"] == 1
    assert resp.json()["results"][0]["title"] == "Sofa"


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_partial_update(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    ad = await _create_ad(async_client, auth, png_bytes)

    resp = await async_client.patch(f"/ads/{ad['pk']}", json={"price": 100}, auth=auth)
    assert resp.status_code == 200
    assert resp.json()["price"] == 100
    assert resp.json()["title"] == "Road bike"

    detail = (await async_client.get(f"/ads/{ad['pk']}")).json()
    assert detail["description"] == AD["description"]


@pytest.mark.asyncio
async def test_update_by_stranger_is_403(async_client: AsyncClient, make_user, png_bytes):
    alice = await make_user("alice@example.com")
    bob = await make_user("bob@example.com")
    ad = await _create_ad(async_client, alice, png_bytes)

    resp = await async_client.patch(f"/ads/{ad['pk']}", json={"price": 1}, auth=bob)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_admin_updates_any_ad(async_client: AsyncClient, make_user, png_bytes):
    alice = await make_user("alice@example.com")
    admin = await make_user("admin@example.com", Role.ADMIN)
    ad = await _create_ad(async_client, alice, png_bytes)

    resp = await async_client.patch(f"/ads/{ad['pk']}", json={"title": "Moderated"}, auth=admin)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Moderated"


@pytest.mark.asyncio
async def test_guard_answers_403_for_missing_ad(async_client: AsyncClient, make_user):
    alice = await make_user("alice@example.com")
    resp = await async_client.patch("/ads/999", json={"price": 1}, auth=alice)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_gets_404_for_missing_ad(async_client: AsyncClient, make_user):
    admin = await make_user("admin@example.com", Role.ADMIN)
    resp = await async_client.patch("/ads/999", json={"price": 1}, auth=admin)
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Image replacement
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_replace_image(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    ad = await _create_ad(async_client, auth, png_bytes)

    jpeg = b"\xff\xd8\xff\xe0" + b"\x00" * 32
    resp = await async_client.patch(
        f"/ads/{ad['pk']}/image",
        files={"image": ("photo.jpg", jpeg, "image/jpeg")},
        auth=auth,
    )
    assert resp.status_code == 200

    image = await async_client.get(f"/ads/{ad['pk']}/image")
    assert image.content == jpeg
    assert image.headers["content-type"] == "image/jpeg"


@pytest.mark.asyncio
async def test_replace_image_rejects_gif(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    ad = await _create_ad(async_client, auth, png_bytes)

    resp = await async_client.patch(
        f"/ads/{ad['pk']}/image",
        files={"image": ("anim.gif", b"GIF89a", "image/gif")},
        auth=auth,
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_scenario(async_client: AsyncClient, make_user, png_bytes):
    """A creates the ad; B is refused; admin C deletes it; it is gone."""
    a = await make_user("a@example.com")
    b = await make_user("b@example.com")
    c = await make_user("c@example.com", Role.ADMIN)
    ad = await _create_ad(async_client, a, png_bytes)

    resp = await async_client.delete(f"/ads/{ad['pk']}", auth=b)
    assert resp.status_code == 403

    resp = await async_client.delete(f"/ads/{ad['pk']}", auth=c)
    assert resp.status_code == 204

    assert (await async_client.get(f"/ads/{ad['pk']}")).status_code == 404
    assert (await async_client.get(f"/ads/{ad['pk']}/image")).status_code == 404


@pytest.mark.asyncio
async def test_owner_deletes_own_ad(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    ad = await _create_ad(async_client, auth, png_bytes)

    resp = await async_client.delete(f"/ads/{ad['pk']}", auth=auth)
    assert resp.status_code == 204
    assert (await async_client.get("/ads")).json()["count"] == 0


# ---------------------------------------------------------------------------
# Diagnostics headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_timing_headers(async_client: AsyncClient):
    resp = await async_client.get("/ads")
    assert "x-response-time-ms" in resp.headers
    assert int(resp.headers["x-query-count"]) >= 1


@pytest.mark.asyncio
async def test_create_with_price_beyond_column_range_is_400(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    resp = await async_client.post(
        "/ads",
        data={"properties": json.dumps({**AD, "price": 2**31})},
        files={"image": ("bike.png", png_bytes, "image/png")},
        auth=auth,
    )
    assert resp.status_code == 400
    assert "Price" in resp.json()["error"]["message"]


@pytest.mark.asyncio
async def test_content_type_must_match_exactly(async_client: AsyncClient, make_user, png_bytes):
    auth = await make_user("alice@example.com")
    resp = await async_client.post(
        "/ads",
        data={"properties": json.dumps(AD)},
        files={"image": ("bike.png", png_bytes, "IMAGE/PNG")},
        auth=auth,
    )
    assert resp.status_code == 400
