# tests/v1/test_comments.py
"""Tests for comment and reply endpoints."""

from fastapi import status

from underkover.services.feed_cache import GLOBAL_FEED_KEY


def _comment(client, post_id, headers, content="a comment"):
    response = client.post(f"/api/v1/posts/{post_id}/comments", json={"content": content}, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def _reply(client, post_id, parent_id, headers, content="a reply"):
    response = client.post(
        f"/api/v1/posts/{post_id}/comments/{parent_id}/replies",
        json={"content": content},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_add_and_list_comments(client, make_post, test_user, auth_token) -> None:
    post = make_post()
    created = _comment(client, post.id, auth_token, "hello there")

    assert created["kind"] == "comment"
    assert created["user_id"] == test_user.id
    assert created["anonymous_alias"] == test_user.anonymous_alias
    assert created["replies"] == []

    tree = client.get(f"/api/v1/posts/{post.id}/comments").json()
    assert tree["post_id"] == post.id
    assert [node["id"] for node in tree["comments"]] == [created["id"]]


def test_nested_replies_are_returned_as_a_tree(client, make_post, auth_token, other_auth_token) -> None:
    post = make_post()
    comment = _comment(client, post.id, auth_token)
    reply = _reply(client, post.id, comment["id"], other_auth_token)
    nested = _reply(client, post.id, reply["id"], auth_token)
    deepest = _reply(client, post.id, nested["id"], other_auth_token, "fourth level")

    tree = client.get(f"/api/v1/posts/{post.id}/comments").json()["comments"]
    assert tree[0]["replies"][0]["replies"][0]["replies"][0]["id"] == deepest["id"]

    body = client.get(f"/api/v1/posts/{post.id}").json()
    assert body["comment_count"] == 4


def test_edit_comment(client, make_post, auth_token) -> None:
    post = make_post()
    comment = _comment(client, post.id, auth_token, "typo")

    response = client.put(
        f"/api/v1/posts/{post.id}/comments/{comment['id']}",
        json={"content": "fixed"},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["content"] == "fixed"
    assert response.json()["updated_at"] is not None


def test_edit_comment_requires_author(client, make_post, auth_token, other_auth_token) -> None:
    post = make_post()
    comment = _comment(client, post.id, auth_token)

    response = client.put(
        f"/api/v1/posts/{post.id}/comments/{comment['id']}",
        json={"content": "mine now"},
        headers=other_auth_token,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["kind"] == "authorization_error"


def test_delete_comment_removes_replies(client, make_post, auth_token, other_auth_token) -> None:
    post = make_post()
    comment = _comment(client, post.id, auth_token)
    reply = _reply(client, post.id, comment["id"], other_auth_token)
    _reply(client, post.id, reply["id"], other_auth_token)

    response = client.delete(f"/api/v1/posts/{post.id}/comments/{comment['id']}", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"id": comment["id"], "removed": 3}
    assert client.get(f"/api/v1/posts/{post.id}/comments").json()["comments"] == []


def test_edit_and_delete_reply(client, make_post, auth_token, other_auth_token) -> None:
    post = make_post()
    comment = _comment(client, post.id, auth_token)
    reply = _reply(client, post.id, comment["id"], other_auth_token, "first draft")
    base = f"/api/v1/posts/{post.id}/comments/{comment['id']}/replies/{reply['id']}"

    edited = client.put(base, json={"content": "second draft"}, headers=other_auth_token)
    assert edited.json()["content"] == "second draft"

    forbidden = client.delete(base, headers=auth_token)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    deleted = client.delete(base, headers=other_auth_token)
    assert deleted.json() == {"id": reply["id"], "removed": 1}


def test_empty_comment_is_rejected(client, make_post, auth_token) -> None:
    post = make_post()
    response = client.post(f"/api/v1/posts/{post.id}/comments", json={"content": "  "}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["kind"] == "validation_error"


def test_comment_targets_must_exist(client, make_post, auth_token) -> None:
    post = make_post()

    missing_post = client.post("/api/v1/posts/777/comments", json={"content": "hi"}, headers=auth_token)
    missing_parent = client.post(
        f"/api/v1/posts/{post.id}/comments/nope/replies",
        json={"content": "hi"},
        headers=auth_token,
    )

    assert missing_post.status_code == status.HTTP_404_NOT_FOUND
    assert missing_post.json()["detail"] == "Post not found"
    assert missing_parent.status_code == status.HTTP_404_NOT_FOUND
    assert missing_parent.json()["detail"] == "Comment not found"


def test_comment_invalidates_feed_cache(client, make_post, auth_token, feed_cache) -> None:
    post = make_post()
    client.get("/api/v1/posts")
    assert feed_cache.get(GLOBAL_FEED_KEY) is not None

    _comment(client, post.id, auth_token)

    assert feed_cache.get(GLOBAL_FEED_KEY) is None
    page = client.get("/api/v1/posts").json()
    assert page["posts"][0]["comment_count"] == 1
