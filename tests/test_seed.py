# tests/test_seed.py
"""Tests for the seed script."""

from datetime import timedelta

from sqlalchemy import func, select

from underkover.core.settings import settings
from underkover.db.time import utcnow
from underkover.models import Post, Tag
from underkover.scripts.seed import PREDEFINED_TAGS, SEED_POSTS, run_seed, seed_posts
from underkover.services.feed import FeedScope, FeedService


def test_seed_is_idempotent(db_session) -> None:
    run_seed(db_session)
    run_seed(db_session)

    tag_count = db_session.scalar(select(func.count()).select_from(Tag))
    post_count = db_session.scalar(select(func.count()).select_from(Post))
    assert post_count == len(SEED_POSTS)
    assert tag_count >= len(PREDEFINED_TAGS)


def test_seed_keeps_display_names_and_leaves_counts_to_organic_posts(db_session) -> None:
    run_seed(db_session)

    mental = db_session.scalars(select(Tag).where(Tag.name == "mentalhealth")).one()
    assert mental.display_name == "MentalHealth"
    assert mental.post_count == 0
    assert mental.trending_score == 0
    assert mental.category == "lifestyle"


def test_seed_posts_fill_an_empty_global_feed(db_session) -> None:
    run_seed(db_session)

    page = FeedService(db_session).page(FeedScope.global_feed())

    assert len(page.posts) == len(SEED_POSTS)
    assert all(post.is_seed and post.author_id is None for post in page.posts)


def test_expired_seed_posts_are_recreated(db_session) -> None:
    run_seed(db_session)
    after_expiry = utcnow() + timedelta(days=settings.seed_post_ttl_days, hours=1)

    recreated = seed_posts(db_session, now=after_expiry)

    assert len(recreated) == len(SEED_POSTS)
    assert seed_posts(db_session, now=after_expiry) == []
