# tests/services/test_tag_stats.py
"""Tests for tag statistics: counts, scores, categories, trending and search."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from underkover.models import Tag
from underkover.services.tag_stats import (
    TagStatsService,
    display_name_for,
    infer_category,
    trending_score,
)

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)
FAR_FUTURE = NOW + timedelta(days=365)


def _tag(name: str, *, post_count: int, score: int, updated: datetime, display_name: str | None = None) -> Tag:
    return Tag(
        name=name,
        display_name=display_name or display_name_for(name),
        post_count=post_count,
        trending_score=score,
        category=infer_category(name),
        last_updated=updated,
        created_at=updated,
    )


@pytest.mark.parametrize(
    ("name", "category"),
    [
        ("deepsecret", "confession"),
        ("lovestory", "crush"),
        ("secretcrush", "confession"),
        ("workcrush", "crush"),
        ("colleague", "work"),
        ("bestfriend", "relationship"),
        ("fooddrama", "controversy"),
        ("campuslife", "other"),
    ],
)
def test_category_uses_first_matching_keyword(name: str, category: str) -> None:
    assert infer_category(name) == category


def test_display_name_capitalises_first_letter() -> None:
    assert display_name_for("campuslife") == "Campuslife"
    assert display_name_for("") == ""


def test_trending_score_weights_today_three_times() -> None:
    assert trending_score(2, 3) == 9
    assert trending_score(0, 0) == 0


def test_recompute_counts_live_posts_and_scores_recency(db_session, make_post) -> None:
    make_post("a", tags=["vent"], created_at=NOW - timedelta(hours=1), expires_at=FAR_FUTURE)
    make_post("b", tags=["vent"], created_at=NOW - timedelta(hours=5), expires_at=FAR_FUTURE)
    make_post("c", tags=["vent"], created_at=NOW - timedelta(days=3), expires_at=FAR_FUTURE)
    make_post("d", tags=["vent"], created_at=NOW - timedelta(days=10), expires_at=FAR_FUTURE)
    make_post("expired", tags=["vent"], created_at=NOW - timedelta(hours=2), expires_at=NOW - timedelta(minutes=1))
    make_post("other tag", tags=["advice"], created_at=NOW, expires_at=FAR_FUTURE)

    tag = TagStatsService(db_session).recompute("vent", now=NOW)

    assert tag.post_count == 4
    assert tag.trending_score == 3 * 2 + 3
    assert tag.category == "other"
    assert tag.display_name == "Vent"


def test_recompute_is_idempotent(db_session, make_post) -> None:
    make_post("x", tags=["crush"], created_at=NOW - timedelta(hours=1), expires_at=FAR_FUTURE)
    service = TagStatsService(db_session)

    first = service.recompute("crush", now=NOW)
    snapshot = (first.post_count, first.trending_score, first.category)
    second = service.recompute("crush", now=NOW)

    assert (second.post_count, second.trending_score, second.category) == snapshot
    assert len(db_session.scalars(select(Tag).where(Tag.name == "crush")).all()) == 1


def test_recompute_keeps_explicit_display_name(db_session, make_post) -> None:
    db_session.add(_tag("mentalhealth", post_count=0, score=0, updated=NOW, display_name="MentalHealth"))
    db_session.commit()
    make_post("y", tags=["mentalhealth"], created_at=NOW, expires_at=FAR_FUTURE)

    tag = TagStatsService(db_session).recompute("mentalhealth", now=NOW)

    assert tag.display_name == "MentalHealth"
    assert tag.post_count == 1


def test_recompute_drops_count_when_posts_expire(db_session, make_post) -> None:
    make_post("z", tags=["rumor"], created_at=NOW, expires_at=NOW + timedelta(hours=1))
    service = TagStatsService(db_session)

    assert service.recompute("rumor", now=NOW).post_count == 1
    later = service.recompute("rumor", now=NOW + timedelta(hours=2))
    assert later.post_count == 0
    assert later.trending_score == 0


def test_recompute_ignores_seed_posts(db_session, make_post) -> None:
    make_post("seeded", tags=["confession"], is_seed=True, created_at=NOW, expires_at=FAR_FUTURE)
    service = TagStatsService(db_session)

    seeded_only = service.recompute("confession", now=NOW)
    assert (seeded_only.post_count, seeded_only.trending_score) == (0, 0)

    make_post("organic", tags=["confession"], created_at=NOW, expires_at=FAR_FUTURE)
    with_organic = service.recompute("confession", now=NOW)
    assert (with_organic.post_count, with_organic.trending_score) == (1, 4)


def test_recompute_all_skips_failing_tags(db_session, make_post, mocker) -> None:
    for name in ("alpha", "bad", "gamma"):
        db_session.add(_tag(name, post_count=0, score=0, updated=NOW))
    db_session.commit()
    make_post("p", tags=["alpha", "gamma"], created_at=NOW, expires_at=FAR_FUTURE)

    original = TagStatsService.recompute

    def flaky(self, tag_name, now=None):
        if tag_name == "bad":
            raise OperationalError("UPDATE tag", {}, Exception("database is locked"))
        return original(self, tag_name, now=now)

    mocker.patch.object(TagStatsService, "recompute", flaky)

    updated = TagStatsService(db_session).recompute_all(now=NOW)

    assert updated == 2
    counts = dict(db_session.execute(select(Tag.name, Tag.post_count)).all())
    assert counts == {"alpha": 1, "bad": 0, "gamma": 1}


def test_trending_orders_by_score_then_count(db_session) -> None:
    db_session.add_all(
        [
            _tag("low", post_count=9, score=2, updated=NOW),
            _tag("high", post_count=1, score=12, updated=NOW),
            _tag("tie_more", post_count=5, score=7, updated=NOW),
            _tag("tie_less", post_count=3, score=7, updated=NOW),
            _tag("unused", post_count=0, score=50, updated=NOW),
        ]
    )
    db_session.commit()

    names = [tag.name for tag in TagStatsService(db_session).trending(10, "all", now=NOW)]

    assert names == ["high", "tie_more", "tie_less", "low"]


@pytest.mark.parametrize(
    ("time_filter", "expected"),
    [
        ("today", {"fresh"}),
        ("week", {"fresh", "days_ago"}),
        ("month", {"fresh", "days_ago", "weeks_ago"}),
        ("all", {"fresh", "days_ago", "weeks_ago", "ancient"}),
    ],
)
def test_trending_time_filter_uses_last_updated(db_session, time_filter: str, expected: set[str]) -> None:
    db_session.add_all(
        [
            _tag("fresh", post_count=1, score=1, updated=NOW - timedelta(hours=2)),
            _tag("days_ago", post_count=1, score=1, updated=NOW - timedelta(days=3)),
            _tag("weeks_ago", post_count=1, score=1, updated=NOW - timedelta(days=20)),
            _tag("ancient", post_count=1, score=1, updated=NOW - timedelta(days=45)),
        ]
    )
    db_session.commit()

    tags = TagStatsService(db_session).trending(10, time_filter, now=NOW)

    assert {tag.name for tag in tags} == expected


def test_trending_respects_limit(db_session) -> None:
    db_session.add_all([_tag(f"t{i}", post_count=1, score=i, updated=NOW) for i in range(5)])
    db_session.commit()

    assert len(TagStatsService(db_session).trending(3, now=NOW)) == 3


def test_search_matches_name_or_display_name_case_insensitively(db_session) -> None:
    db_session.add_all(
        [
            _tag("mentalhealth", post_count=4, score=0, updated=NOW, display_name="MentalHealth"),
            _tag("healthyfood", post_count=9, score=0, updated=NOW),
            _tag("wealth", post_count=2, score=0, updated=NOW),
            _tag("healthcheck", post_count=0, score=0, updated=NOW),
        ]
    )
    db_session.commit()

    names = [tag.name for tag in TagStatsService(db_session).search("HEALTH", limit=10)]

    assert names == ["healthyfood", "mentalhealth"]


def test_search_treats_wildcards_literally(db_session) -> None:
    db_session.add(_tag("anything", post_count=1, score=0, updated=NOW))
    db_session.commit()

    assert TagStatsService(db_session).search("%_", limit=10) == []


def test_recompute_all_survives_unexpected_errors(db_session, make_post, mocker) -> None:
    for name in ("alpha", "broken", "gamma"):
        db_session.add(_tag(name, post_count=0, score=0, updated=NOW))
    db_session.commit()
    make_post("p", tags=["alpha", "gamma"], created_at=NOW, expires_at=FAR_FUTURE)

    original = TagStatsService.recompute

    def flaky(self, tag_name, now=None):
        if tag_name == "broken":
            raise RuntimeError("unexpected")
        return original(self, tag_name, now=now)

    mocker.patch.object(TagStatsService, "recompute", flaky)

    assert TagStatsService(db_session).recompute_all(now=NOW) == 2
    counts = dict(db_session.execute(select(Tag.name, Tag.post_count)).all())
    assert counts == {"alpha": 1, "broken": 0, "gamma": 1}
