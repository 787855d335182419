"""Post Repository — typed access to a table of posts."""

from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from tabular_store.models.posts import Post
from tabular_store.models.query import QueryOptions
from tabular_store.repositories.clock import utcnow
from tabular_store.store.table import TabularStore, make_id


class PostRepository:
    """CRUD over posts, plus reaction counters."""

    def __init__(
        self,
        table: Optional[TabularStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.table = table if table is not None else TabularStore(id_prefix="post_")
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def create(
        self,
        author_id: str,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        published: bool = False,
    ) -> Post:
        now = self.now()
        post = Post(
            id=make_id(self.table.id_prefix),
            author_id=author_id,
            title=title,
            content=content,
            tags=tags or [],
            published=published,
            created_at=now,
            updated_at=now,
            reactions={},
        )
        return Post.model_validate(self.table.insert(post.model_dump()))

    def find_by_id(self, post_id: str) -> Optional[Post]:
        row = self.table.get(post_id)
        return Post.model_validate(row) if row is not None else None

    def query(
        self, options: Union[QueryOptions, Mapping[str, Any], None] = None
    ) -> List[Post]:
        return [Post.model_validate(r) for r in self.table.query(options)]

    def update(self, post_id: str, patch: Mapping[str, Any]) -> Optional[Post]:
        """Validate and apply a partial update, stamping ``updated_at``."""
        existing = self.table.get(post_id)
        if existing is None:
            return None
        changes = {**patch, "updated_at": self.now()}
        merged = Post.model_validate({**existing, **changes, "id": post_id})
        row = self.table.update(post_id, merged.model_dump(include=set(changes)))
        return Post.model_validate(row)

    def react(self, post_id: str, reaction: str, delta: int = 1) -> Optional[Post]:
        """Add ``delta`` to a reaction counter. Returns None if the post is missing."""
        existing = self.table.get(post_id)
        if existing is None:
            return None
        reactions = existing["reactions"]
        reactions[reaction] = reactions.get(reaction, 0) + delta
        return self.update(post_id, {"reactions": reactions})

    def delete(self, post_id: str) -> bool:
        return self.table.delete(post_id)

    def clear(self) -> None:
        self.table.clear()

    def count(self) -> int:
        return self.table.count()
