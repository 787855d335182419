"""Post schema."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class Post(BaseModel):
    """A post written by a user."""

    id: str
    author_id: str
    title: str
    content: str
    tags: List[str] = []
    published: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    reactions: Dict[str, int] = {}          # e.g., {"like": 10, "love": 2}
