"""
Comment endpoint tests - covers adding, listing and deleting comments, and
the idempotent no-op when a comment is deleted through the wrong article.
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user_and_article(client: AsyncClient, suffix: str) -> tuple[dict, str]:
    """
    Create a user and an article, returning (headers, slug).

    Using a unique suffix per call keeps usernames, emails and slugs
    distinct when a test needs more than one article.
    """
    user_resp = await client.post("/api/v1/users", json={
        "username": f"user_{suffix}",
        "email": f"user_{suffix}@example.com",
    })
    assert user_resp.status_code == 201
    headers = {"X-User-Id": str(user_resp.json()["id"])}

    article_resp = await client.post("/api/v1/articles", headers=headers, json={
        "title": f"Article for {suffix}",
        "description": "Description",
        "body": "Article body",
    })
    assert article_resp.status_code == 201
    return headers, article_resp.json()["article"]["slug"]


# ---------------------------------------------------------------------------
# Add comment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient):
    headers, slug = await _create_user_and_article(async_client, "add_comment")

    resp = await async_client.post(
        f"/api/v1/articles/{slug}/comments", headers=headers, json={"body": "Great article!"}
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["comment"]["body"] == "Great article!"
    assert data["comment"]["author"]["username"] == "user_add_comment"
    assert "id" in data["comment"]
    assert "createdAt" in data["comment"]
    assert data["article"]["slug"] == slug


@pytest.mark.asyncio
async def test_list_comments(async_client: AsyncClient):
    headers, slug = await _create_user_and_article(async_client, "list_comments")

    for i in range(3):
        resp = await async_client.post(
            f"/api/v1/articles/{slug}/comments", headers=headers, json={"body": f"Comment {i}"}
        )
        assert resp.status_code == 201

    resp = await async_client.get(f"/api/v1/articles/{slug}/comments")
    assert resp.status_code == 200
    assert [c["body"] for c in resp.json()["comments"]] == ["Comment 0", "Comment 1", "Comment 2"]


@pytest.mark.asyncio
async def test_comment_on_nonexistent_article(async_client: AsyncClient):
    headers, _ = await _create_user_and_article(async_client, "ghost")
    resp = await async_client.post(
        "/api/v1/articles/missing/comments", headers=headers, json={"body": "Ghost comment"}
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_comment_requires_identity(async_client: AsyncClient):
    _, slug = await _create_user_and_article(async_client, "anon")
    resp = await async_client.post(f"/api/v1/articles/{slug}/comments", json={"body": "hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_comment_missing_body_field(async_client: AsyncClient):
    headers, slug = await _create_user_and_article(async_client, "missing_body")
    resp = await async_client.post(f"/api/v1/articles/{slug}/comments", headers=headers, json={})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_comments_nonexistent_article(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/articles/missing/comments")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete comment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_comment(async_client: AsyncClient):
    headers, slug = await _create_user_and_article(async_client, "delete_comment")
    created = await async_client.post(
        f"/api/v1/articles/{slug}/comments", headers=headers, json={"body": "Temporary"}
    )
    comment_id = created.json()["comment"]["id"]

    resp = await async_client.delete(f"/api/v1/articles/{slug}/comments/{comment_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["article"]["slug"] == slug

    listed = await async_client.get(f"/api/v1/articles/{slug}/comments")
    assert listed.json()["comments"] == []


@pytest.mark.asyncio
async def test_delete_comment_through_other_article_is_noop(async_client: AsyncClient):
    headers, first_slug = await _create_user_and_article(async_client, "first")
    _, second_slug = await _create_user_and_article(async_client, "second")
    created = await async_client.post(
        f"/api/v1/articles/{second_slug}/comments", headers=headers, json={"body": "Keep me"}
    )
    comment_id = created.json()["comment"]["id"]

    resp = await async_client.delete(
        f"/api/v1/articles/{first_slug}/comments/{comment_id}", headers=headers
    )
    assert resp.status_code == 200

    listed = await async_client.get(f"/api/v1/articles/{second_slug}/comments")
    assert [c["body"] for c in listed.json()["comments"]] == ["Keep me"]


@pytest.mark.asyncio
async def test_delete_comment_twice_is_noop(async_client: AsyncClient):
    headers, slug = await _create_user_and_article(async_client, "twice")
    created = await async_client.post(
        f"/api/v1/articles/{slug}/comments", headers=headers, json={"body": "Once"}
    )
    comment_id = created.json()["comment"]["id"]

    url = f"/api/v1/articles/{slug}/comments/{comment_id}"
    assert (await async_client.delete(url, headers=headers)).status_code == 200
    assert (await async_client.delete(url, headers=headers)).status_code == 200
