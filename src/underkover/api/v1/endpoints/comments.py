# src/underkover/api/v1/endpoints/comments.py
"""Comment and reply endpoints for the Underkover API."""

from dataclasses import asdict

from fastapi import APIRouter, status
from sqlalchemy.orm import Session

from underkover.api.v1.dependencies import CurrentUserDep, FeedCacheDep, OptionalUserDep, SessionDep
from underkover.models import User
from underkover.schemas.comment import (
    CommentCreate,
    CommentDeleted,
    CommentResponse,
    CommentTreeResponse,
    CommentUpdate,
)
from underkover.services.comment_tree import CommentNode, CommentTreeService, count_nodes, load_tree
from underkover.services.feed_cache import FeedCache
from underkover.services.posts import PostService

router = APIRouter(prefix="/posts", tags=["comments"])


def _to_response(node: CommentNode) -> CommentResponse:
    return CommentResponse.model_validate(asdict(node))


def _deleted(node: CommentNode) -> CommentDeleted:
    return CommentDeleted(id=node.id, removed=count_nodes([node]))


def _service(db: Session, cache: FeedCache | None, post_id: int, user: User) -> CommentTreeService:
    # Ghost-circle threads are reachable by circle members only.
    PostService(db).get_visible(post_id, user)
    return CommentTreeService(db, cache)


@router.get("/{post_id}/comments", response_model=CommentTreeResponse)
async def list_comments(
    post_id: int,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> CommentTreeResponse:
    """Return the full comment tree of a live post."""
    post = PostService(db).get_visible(post_id, viewer)
    nodes = load_tree(post.comments)
    return CommentTreeResponse(post_id=post.id, comments=[_to_response(node) for node in nodes])


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    comment: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentResponse:
    """Add a top-level comment to a post."""
    node = _service(db, cache, post_id, current_user).add_comment(
        post_id, comment.content, current_user
    )
    return _to_response(node)


@router.put("/{post_id}/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    post_id: int,
    comment_id: str,
    comment: CommentUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentResponse:
    """Edit a top-level comment written by the caller."""
    node = _service(db, cache, post_id, current_user).edit_comment(
        post_id, comment_id, comment.content, current_user
    )
    return _to_response(node)


@router.delete("/{post_id}/comments/{comment_id}", response_model=CommentDeleted)
async def delete_comment(
    post_id: int,
    comment_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentDeleted:
    """Delete a top-level comment and every reply beneath it."""
    node = _service(db, cache, post_id, current_user).delete_comment(
        post_id, comment_id, current_user
    )
    return _deleted(node)


@router.post(
    "/{post_id}/comments/{comment_id}/replies",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_reply(
    post_id: int,
    comment_id: str,
    reply: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentResponse:
    """Reply to a comment or to a reply at any depth.

    ``comment_id`` may name any node of the tree; the reply is appended as
    its last child.
    """
    node = _service(db, cache, post_id, current_user).add_reply(
        post_id, comment_id, reply.content, current_user
    )
    return _to_response(node)


@router.put(
    "/{post_id}/comments/{comment_id}/replies/{reply_id}",
    response_model=CommentResponse,
)
async def edit_reply(
    post_id: int,
    comment_id: str,
    reply_id: str,
    reply: CommentUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentResponse:
    """Edit a reply written by the caller."""
    node = _service(db, cache, post_id, current_user).edit_reply(
        post_id, comment_id, reply_id, reply.content, current_user
    )
    return _to_response(node)


@router.delete(
    "/{post_id}/comments/{comment_id}/replies/{reply_id}",
    response_model=CommentDeleted,
)
async def delete_reply(
    post_id: int,
    comment_id: str,
    reply_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> CommentDeleted:
    """Delete a reply together with its own replies."""
    node = _service(db, cache, post_id, current_user).delete_reply(
        post_id, comment_id, reply_id, current_user
    )
    return _deleted(node)
