"""
Tabular Store API — FastAPI endpoints.

Exposes the user and post services over REST:
- Users: register, read, partial update, delete, list/search, addresses
- Posts: create, read, publish, react, delete, list/search, recent
- Health: record counts

Sync endpoints run on FastAPI's worker threads while the stores are not
internally synchronized, so every service call holds the app's lock.
"""

import threading
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from tabular_store.config import StoreSettings, configure_logging, get_settings
from tabular_store.models.query import QueryOptions, SortOrder
from tabular_store.models.users import UserRole
from tabular_store.observability.timing import TimingSink
from tabular_store.repositories.posts import PostRepository
from tabular_store.repositories.users import UserRepository
from tabular_store.services.errors import EmailAlreadyRegisteredError, EntityNotFoundError
from tabular_store.services.posts import PostService
from tabular_store.services.users import UserService
from tabular_store.store.table import InvalidQueryError


# --- Request Models ---

class UserRegisterRequest(BaseModel):
    username: str
    email: str
    role: UserRole = UserRole.USER


class UserUpdateRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    metadata: Optional[dict] = None


class AddressCreateRequest(BaseModel):
    street: str
    city: str
    zip: str
    country: str
    state: Optional[str] = None


class PostCreateRequest(BaseModel):
    author_id: str
    title: str
    content: str
    tags: List[str] = []


class ReactionRequest(BaseModel):
    reaction: str
    delta: int = 1


# --- Application Factory ---

def create_app(
    user_repo: Optional[UserRepository] = None,
    post_repo: Optional[PostRepository] = None,
    settings: Optional[StoreSettings] = None,
    timing_sink: Optional[TimingSink] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    if settings is None:
        settings = get_settings()
        configure_logging(settings.log_level)
    app = FastAPI(
        title=settings.api_title,
        description="In-memory tabular store with user and post services",
        version="0.1.0",
    )

    users = user_repo if user_repo is not None else UserRepository()
    posts = post_repo if post_repo is not None else PostRepository()
    user_service = UserService(users, timing_sink=timing_sink)
    post_service = PostService(posts, users, timing_sink=timing_sink)
    lock = threading.Lock()

    # Store components on app state for access in endpoints
    app.state.user_repo = users
    app.state.post_repo = posts
    app.state.user_service = user_service
    app.state.post_service = post_service
    app.state.lock = lock

    # === USERS ===

    @app.post("/users")
    def register_user(req: UserRegisterRequest):
        """Register a new user."""
        with lock:
            try:
                user = user_service.register_user(req.username, req.email, req.role)
            except EmailAlreadyRegisteredError as e:
                raise HTTPException(409, str(e))
        return user.model_dump(mode="json")

    @app.get("/users")
    def list_users(
        role: Optional[UserRole] = None,
        sort_by: Optional[str] = None,
        sort_order: SortOrder = SortOrder.ASC,
        offset: int = 0,
        limit: Optional[int] = None,
    ):
        """List users, optionally filtered by role."""
        with lock:
            try:
                options = QueryOptions(
                    filter={"role": role} if role else None,
                    sort_by=sort_by,
                    sort_order=sort_order,
                    offset=offset,
                    limit=limit,
                )
                result = user_service.list_users(options)
            except (InvalidQueryError, ValidationError) as e:
                raise HTTPException(422, str(e))
        return [u.model_dump(mode="json") for u in result]

    @app.get("/users/{user_id}")
    def get_user(user_id: str):
        with lock:
            try:
                user = user_service.get_user(user_id)
            except EntityNotFoundError:
                raise HTTPException(404, "User not found")
        return user.model_dump(mode="json")

    @app.patch("/users/{user_id}")
    def update_user(user_id: str, req: UserUpdateRequest):
        """Partial update; only fields present in the body change."""
        with lock:
            try:
                user = user_service.update_user(user_id, req.model_dump(exclude_unset=True))
            except EntityNotFoundError:
                raise HTTPException(404, "User not found")
            except EmailAlreadyRegisteredError as e:
                raise HTTPException(409, str(e))
            except ValidationError as e:
                raise HTTPException(422, str(e))
        return user.model_dump(mode="json")

    @app.delete("/users/{user_id}")
    def delete_user(user_id: str):
        with lock:
            deleted = user_service.delete_user(user_id)
        return {"deleted": deleted, "user_id": user_id}

    @app.post("/users/{user_id}/addresses")
    def add_address(user_id: str, req: AddressCreateRequest):
        with lock:
            try:
                address = user_service.add_address(user_id, **req.model_dump())
            except EntityNotFoundError:
                raise HTTPException(404, "User not found")
        return address.model_dump(mode="json")

    # === POSTS ===

    @app.post("/posts")
    def create_post(req: PostCreateRequest):
        with lock:
            try:
                post = post_service.create_post(
                    req.author_id, req.title, req.content, req.tags
                )
            except EntityNotFoundError:
                raise HTTPException(404, "Author not found")
        return post.model_dump(mode="json")

    @app.get("/posts")
    def list_posts(
        author_id: Optional[str] = None,
        published: Optional[bool] = None,
        tag: Optional[str] = None,
        q: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: SortOrder = SortOrder.ASC,
        offset: int = 0,
        limit: Optional[int] = None,
    ):
        """Search posts by author, publication state, tag and title text."""
        with lock:
            try:
                result = post_service.search_posts(
                    author_id=author_id,
                    published=published,
                    tag=tag,
                    text=q,
                    sort_by=sort_by,
                    sort_order=sort_order,
                    offset=offset,
                    limit=limit,
                )
            except (InvalidQueryError, ValidationError) as e:
                raise HTTPException(422, str(e))
        return [p.model_dump(mode="json") for p in result]

    @app.get("/posts/recent")
    def list_recent_posts(limit: Optional[int] = None):
        """Newest posts first."""
        if limit is None:
            limit = settings.recent_posts_limit
        with lock:
            try:
                result = post_service.list_recent(limit)
            except ValidationError as e:
                raise HTTPException(422, str(e))
        return [p.model_dump(mode="json") for p in result]

    @app.get("/posts/{post_id}")
    def get_post(post_id: str):
        with lock:
            try:
                post = post_service.get_post(post_id)
            except EntityNotFoundError:
                raise HTTPException(404, "Post not found")
        return post.model_dump(mode="json")

    @app.post("/posts/{post_id}/publish")
    def publish_post(post_id: str):
        with lock:
            try:
                post = post_service.publish(post_id)
            except EntityNotFoundError:
                raise HTTPException(404, "Post not found")
        return post.model_dump(mode="json")

    @app.post("/posts/{post_id}/reactions")
    def react_to_post(post_id: str, req: ReactionRequest):
        with lock:
            try:
                post = post_service.react(post_id, req.reaction, req.delta)
            except EntityNotFoundError:
                raise HTTPException(404, "Post not found")
        return post.model_dump(mode="json")

    @app.delete("/posts/{post_id}")
    def delete_post(post_id: str):
        with lock:
            deleted = post_service.delete_post(post_id)
        return {"deleted": deleted, "post_id": post_id}

    # === HEALTH ===

    @app.get("/health")
    def health():
        with lock:
            return {
                "status": "ok",
                "users": users.count(),
                "posts": posts.count(),
            }

    return app


# Default application instance. Logging is configured only by a bare
# create_app() call, e.g. `uvicorn --factory tabular_store.api.app:create_app`.
app = create_app(settings=get_settings())
