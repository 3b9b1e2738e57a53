"""Comment trees embedded in posts.

A post stores its comments as a JSON list of nodes; every node has the same
shape and an ordered list of child replies, so threads can nest to any
depth. Mutations read the post, change the tree in memory and write the
whole list back. The post's ``version_id`` turns a concurrent write into a
``StaleDataError``, after which the mutation is replayed on a fresh copy.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from underkover.core.errors import (
    CommentNotFound,
    ConcurrentModification,
    NotAuthorized,
    PostNotFound,
    ValidationFailed,
)
from underkover.core.settings import settings
from underkover.db.time import utcnow
from underkover.models import User
from underkover.repositories.post_repo import PostRepository
from underkover.services.feed_cache import FeedCache, cache_key_for_post

logger = logging.getLogger(__name__)

NodeKind = Literal["comment", "reply"]
Path = tuple[int, ...]
T = TypeVar("T")


@dataclass
class CommentNode:
    """A comment or a reply; both share one shape."""

    id: str
    kind: NodeKind
    user_id: int
    anonymous_alias: str
    avatar_emoji: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    replies: list[CommentNode] = field(default_factory=list)

    @classmethod
    def new(cls, kind: NodeKind, author: User, content: str) -> CommentNode:
        return cls(
            id=uuid.uuid4().hex,
            kind=kind,
            user_id=author.id,
            anonymous_alias=author.anonymous_alias or "",
            avatar_emoji=author.avatar_emoji or "",
            content=content,
            created_at=utcnow(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommentNode:
        updated_at = data.get("updated_at")
        return cls(
            id=data["id"],
            kind=data.get("kind", "comment"),
            user_id=data["user_id"],
            anonymous_alias=data.get("anonymous_alias", ""),
            avatar_emoji=data.get("avatar_emoji", ""),
            content=data.get("content", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            replies=[cls.from_dict(child) for child in data.get("replies", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "user_id": self.user_id,
            "anonymous_alias": self.anonymous_alias,
            "avatar_emoji": self.avatar_emoji,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "replies": [child.to_dict() for child in self.replies],
        }


def load_tree(raw: Sequence[dict[str, Any]] | None) -> list[CommentNode]:
    return [CommentNode.from_dict(item) for item in raw or []]


def dump_tree(nodes: Sequence[CommentNode]) -> list[dict[str, Any]]:
    return [node.to_dict() for node in nodes]


def find_path(nodes: Sequence[CommentNode], node_id: str) -> Path | None:
    """Depth-first search for ``node_id``; returns child indexes from the root."""
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return (index,)
        below = find_path(node.replies, node_id)
        if below is not None:
            return (index, *below)
    return None


def node_at(nodes: Sequence[CommentNode], path: Path) -> CommentNode:
    node = nodes[path[0]]
    for index in path[1:]:
        node = node.replies[index]
    return node


def remove_at(nodes: list[CommentNode], path: Path) -> CommentNode:
    """Detach the node at ``path`` together with its replies."""
    siblings = nodes if len(path) == 1 else node_at(nodes, path[:-1]).replies
    return siblings.pop(path[-1])


def iter_nodes(nodes: Sequence[CommentNode]) -> Iterator[CommentNode]:
    for node in nodes:
        yield node
        yield from iter_nodes(node.replies)


def count_nodes(nodes: Sequence[CommentNode]) -> int:
    return sum(1 for _ in iter_nodes(nodes))


def _top_level_path(nodes: Sequence[CommentNode], comment_id: str) -> Path:
    for index, node in enumerate(nodes):
        if node.id == comment_id:
            return (index,)
    raise CommentNotFound()


def _reply_path(nodes: Sequence[CommentNode], comment_id: str, reply_id: str) -> Path:
    root = _top_level_path(nodes, comment_id)
    below = find_path(node_at(nodes, root).replies, reply_id)
    if below is None:
        raise CommentNotFound("Reply not found")
    return (*root, *below)


def _require_content(content: str) -> str:
    if not content or not content.strip():
        raise ValidationFailed("Please add some content")
    return content


def _require_identity(user: User) -> None:
    if not user.anonymous_alias or not user.avatar_emoji:
        raise ValidationFailed("User alias or avatar not found")


def _require_owner(node: CommentNode, actor: User) -> None:
    if node.user_id != actor.id:
        raise NotAuthorized("User not authorized")


class CommentTreeService:
    """Adds, edits and deletes comments and replies of a post."""

    def __init__(
        self,
        session: Session,
        cache: FeedCache | None = None,
        retries: int | None = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.retries = settings.comment_write_retries if retries is None else retries
        self._posts = PostRepository(session)

    def _mutate(self, post_id: int, mutation: Callable[[list[CommentNode]], T]) -> T:
        for attempt in range(self.retries + 1):
            post = self._posts.get_live(post_id)
            if post is None:
                raise PostNotFound()
            nodes = load_tree(post.comments)
            result = mutation(nodes)
            post.comments = dump_tree(nodes)
            try:
                self.session.commit()
            except StaleDataError:
                self.session.rollback()
                logger.info(
                    "Concurrent comment write on post %s (attempt %d), retrying",
                    post_id,
                    attempt + 1,
                )
                continue
            if self.cache is not None:
                self.cache.invalidate(cache_key_for_post(post.ghost_circle_id))
            return result
        raise ConcurrentModification("Post was modified concurrently, please retry")

    def add_comment(self, post_id: int, content: str, author: User) -> CommentNode:
        """Append a new top-level comment."""
        _require_identity(author)
        node = CommentNode.new("comment", author, _require_content(content))

        def apply(nodes: list[CommentNode]) -> CommentNode:
            nodes.append(node)
            return node

        return self._mutate(post_id, apply)

    def add_reply(self, post_id: int, parent_id: str, content: str, author: User) -> CommentNode:
        """Append a reply as the last child of ``parent_id``, wherever it sits."""
        _require_identity(author)
        node = CommentNode.new("reply", author, _require_content(content))

        def apply(nodes: list[CommentNode]) -> CommentNode:
            path = find_path(nodes, parent_id)
            if path is None:
                raise CommentNotFound()
            node_at(nodes, path).replies.append(node)
            return node

        return self._mutate(post_id, apply)

    def _edit(self, post_id: int, locate: Callable[[list[CommentNode]], Path],
              content: str, actor: User) -> CommentNode:
        _require_content(content)

        def apply(nodes: list[CommentNode]) -> CommentNode:
            node = node_at(nodes, locate(nodes))
            _require_owner(node, actor)
            node.content = content
            node.updated_at = utcnow()
            return node

        return self._mutate(post_id, apply)

    def _delete(self, post_id: int, locate: Callable[[list[CommentNode]], Path],
                actor: User) -> CommentNode:
        def apply(nodes: list[CommentNode]) -> CommentNode:
            path = locate(nodes)
            _require_owner(node_at(nodes, path), actor)
            return remove_at(nodes, path)

        return self._mutate(post_id, apply)

    def edit_comment(self, post_id: int, comment_id: str, content: str, actor: User) -> CommentNode:
        return self._edit(post_id, lambda nodes: _top_level_path(nodes, comment_id), content, actor)

    def edit_reply(
        self,
        post_id: int,
        comment_id: str,
        reply_id: str,
        content: str,
        actor: User,
    ) -> CommentNode:
        return self._edit(
            post_id,
            lambda nodes: _reply_path(nodes, comment_id, reply_id),
            content,
            actor,
        )

    def delete_comment(self, post_id: int, comment_id: str, actor: User) -> CommentNode:
        """Remove a top-level comment and all of its replies."""
        return self._delete(post_id, lambda nodes: _top_level_path(nodes, comment_id), actor)

    def delete_reply(self, post_id: int, comment_id: str, reply_id: str, actor: User) -> CommentNode:
        """Remove a reply under ``comment_id`` and all of its replies."""
        return self._delete(
            post_id,
            lambda nodes: _reply_path(nodes, comment_id, reply_id),
            actor,
        )
