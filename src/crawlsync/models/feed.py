from __future__ import annotations

from pydantic import BaseModel


class FeedPost(BaseModel):
    """One post as returned by the feed API."""

    id: str
    message: str = ""
    created_time: str | None = None
    permalink_url: str | None = None
