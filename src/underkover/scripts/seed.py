# src/underkover/scripts/seed.py
"""Create the predefined tags and the editorial seed posts.

Seed posts keep the global feed from opening empty on a new deployment.
Running the script again leaves existing rows alone.
"""
from __future__ import annotations

import argparse
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from underkover.core.settings import settings
from underkover.db.session import SessionLocal
from underkover.db.time import utcnow
from underkover.models import Post, Tag
from underkover.services.tag_stats import TagStatsService, infer_category
from underkover.services.tagging import normalize_tags

logger = logging.getLogger(__name__)

PREDEFINED_TAGS: tuple[tuple[str, str], ...] = (
    ("confession", "Confession"),
    ("crush", "Crush"),
    ("secret", "Secret"),
    ("controversy", "Controversy"),
    ("rumor", "Rumor"),
    ("advice", "Advice"),
    ("vent", "Vent"),
    ("mentalhealth", "MentalHealth"),
    ("relationship", "Relationship"),
    ("campuslife", "CampusLife"),
)

SEED_ALIAS = "Underkover"
SEED_AVATAR = "🕶️"

SEED_POSTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Welcome to Underkover. Say what you actually think. #confession", ()),
    ("Posts here disappear after a day, so make them count.", ("advice",)),
    ("Got a crush you will never tell? This is the place. #crush", ()),
    ("Hardest part of campus life nobody warned you about? #campuslife", ()),
    ("Bad day? Vent here, nobody knows it is you. #vent", ("mentalhealth",)),
    ("What is the wildest rumor you have heard this week? #rumor", ()),
)


def seed_tags(session: Session) -> int:
    """Insert missing predefined tags; returns how many were created."""
    now = utcnow()
    existing = set(session.scalars(select(Tag.name)))
    created = 0
    for name, display_name in PREDEFINED_TAGS:
        if name in existing:
            continue
        session.add(
            Tag(
                name=name,
                display_name=display_name,
                category=infer_category(name),
                created_at=now,
                last_updated=now,
            )
        )
        created += 1
    session.commit()
    return created


def seed_posts(session: Session, now: datetime | None = None) -> list[Post]:
    """Insert seed posts that are missing or have expired."""
    now = now or utcnow()
    live_seeds = select(Post.content).where(Post.is_seed.is_(True), Post.expires_at > now)
    existing = set(session.scalars(live_seeds))
    created: list[Post] = []
    for content, manual_tags in SEED_POSTS:
        if content in existing:
            continue
        post = Post(
            author_id=None,
            content=content,
            images=[],
            videos=[],
            anonymous_alias=SEED_ALIAS,
            avatar_emoji=SEED_AVATAR,
            created_at=now,
            expires_at=now + timedelta(days=settings.seed_post_ttl_days),
            comments=[],
            share_count=0,
            is_seed=True,
        )
        post.set_tags(normalize_tags(list(manual_tags), content))
        session.add(post)
        created.append(post)
    session.commit()
    return created


def run_seed(session: Session) -> None:
    tags_created = seed_tags(session)
    posts = seed_posts(session)

    stats = TagStatsService(session)
    for name in dict.fromkeys(tag for post in posts for tag in post.tags):
        stats.recompute(name)
    logger.info("Seeded %d tags and %d posts", tags_created, len(posts))


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed predefined tags and seed posts.")
    parser.add_argument("--verbose", action="store_true", help="Log each step")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    with SessionLocal() as session:
        run_seed(session)


if __name__ == "__main__":
    main()
