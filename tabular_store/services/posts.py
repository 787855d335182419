"""
Post Service — authoring, publishing and listing posts.

Search combines the store's three filter kinds: equality (author, published
flag), predicates (tag membership) and patterns (title text).
"""

import logging
import re
from typing import List, Optional

from tabular_store.models.posts import Post
from tabular_store.models.query import QueryOptions, SortOrder
from tabular_store.observability.timing import TimingSink, timed
from tabular_store.repositories.posts import PostRepository
from tabular_store.repositories.users import UserRepository
from tabular_store.services.errors import EntityNotFoundError

logger = logging.getLogger(__name__)


class PostService:
    def __init__(
        self,
        post_repo: PostRepository,
        user_repo: UserRepository,
        timing_sink: Optional[TimingSink] = None,
    ):
        self.post_repo = post_repo
        self.user_repo = user_repo
        self.create_post = timed(self.create_post, timing_sink, "PostService.create_post")
        self.publish = timed(self.publish, timing_sink, "PostService.publish")
        self.react = timed(self.react, timing_sink, "PostService.react")

    def create_post(
        self,
        author_id: str,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
    ) -> Post:
        """Create an unpublished post. The author must exist."""
        if self.user_repo.find_by_id(author_id) is None:
            raise EntityNotFoundError("Author", author_id)
        post = self.post_repo.create(
            author_id=author_id,
            title=title,
            content=content,
            tags=tags or [],
            published=False,
        )
        logger.info("Created post %s by %s", post.id, author_id)
        return post

    def publish(self, post_id: str) -> Post:
        post = self.post_repo.update(post_id, {"published": True})
        if post is None:
            raise EntityNotFoundError("Post", post_id)
        logger.info("Published post %s", post_id)
        return post

    def react(self, post_id: str, reaction: str, delta: int = 1) -> Post:
        post = self.post_repo.react(post_id, reaction, delta)
        if post is None:
            raise EntityNotFoundError("Post", post_id)
        return post

    def get_post(self, post_id: str) -> Post:
        post = self.post_repo.find_by_id(post_id)
        if post is None:
            raise EntityNotFoundError("Post", post_id)
        return post

    def list_recent(self, limit: int = 10) -> List[Post]:
        """Newest posts first."""
        return self.post_repo.query(
            QueryOptions(sort_by="created_at", sort_order=SortOrder.DESC, limit=limit)
        )

    def search_posts(
        self,
        author_id: Optional[str] = None,
        published: Optional[bool] = None,
        tag: Optional[str] = None,
        text: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: SortOrder = SortOrder.ASC,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Post]:
        """
        Filter posts. ``tag`` must be one of the post's tags; ``text`` is a
        case-insensitive substring of the title.
        """
        criteria = {}
        if author_id is not None:
            criteria["author_id"] = author_id
        if published is not None:
            criteria["published"] = published
        if tag is not None:
            criteria["tags"] = lambda tags: tag in tags
        if text:
            criteria["title"] = re.compile(re.escape(text), re.IGNORECASE)

        return self.post_repo.query(
            QueryOptions(
                filter=criteria or None,
                sort_by=sort_by,
                sort_order=sort_order,
                offset=offset,
                limit=limit,
            )
        )

    def delete_post(self, post_id: str) -> bool:
        return self.post_repo.delete(post_id)
