"""Feed page envelopes."""

from pydantic import BaseModel, ConfigDict, Field

from .post import PostResponse


class FeedPageResponse(BaseModel):
    """A cursor-paginated slice of a feed."""

    posts: list[PostResponse]
    has_more: bool = Field(..., alias="hasMore")

    model_config = ConfigDict(populate_by_name=True)


class TagFeedPageResponse(FeedPageResponse):
    """Feed page for a tag, echoing the requested tag name."""

    tag: str
