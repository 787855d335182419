"""Tests for the user and post services."""

import pytest

from tabular_store.models.query import SortOrder
from tabular_store.models.users import UserRole
from tabular_store.observability.timing import TimingRecorder
from tabular_store.repositories.posts import PostRepository
from tabular_store.repositories.users import UserRepository
from tabular_store.services.errors import (
    EmailAlreadyRegisteredError,
    EntityNotFoundError,
    ServiceError,
)
from tabular_store.services.posts import PostService
from tabular_store.services.retry import retry
from tabular_store.services.users import UserService

from tests.test_repositories import FakeClock


class TestUserService:
    def setup_method(self):
        self.timings = TimingRecorder()
        self.repo = UserRepository(clock=FakeClock())
        self.service = UserService(self.repo, timing_sink=self.timings)

    def test_register_user(self):
        user = self.service.register_user("alice", "alice@example.com")

        assert user.username == "alice"
        assert user.role == UserRole.USER
        assert self.service.get_user(user.id) == user

    def test_register_duplicate_email_rejected(self):
        self.service.register_user("alice", "alice@example.com")

        with pytest.raises(EmailAlreadyRegisteredError) as exc:
            self.service.register_user("alice2", "alice@example.com")

        assert isinstance(exc.value, ServiceError)
        assert self.repo.count() == 1

    def test_get_unknown_user(self):
        with pytest.raises(EntityNotFoundError):
            self.service.get_user("user_missing")

    def test_add_address(self):
        user = self.service.register_user("alice", "alice@example.com")

        address = self.service.add_address(
            user.id, street="1 Main St", city="Springfield", zip="10001", country="US"
        )

        assert address.id.startswith("addr_")
        stored = self.service.get_user(user.id)
        assert [a.id for a in stored.addresses] == [address.id]
        assert stored.addresses[0].city == "Springfield"

    def test_add_address_unknown_user(self):
        with pytest.raises(EntityNotFoundError):
            self.service.add_address(
                "user_missing", street="x", city="y", zip="z", country="w"
            )

    def test_get_users_by_role(self):
        self.service.register_user("alice", "a@x.io", role=UserRole.ADMIN)
        self.service.register_user("bob", "b@x.io")

        admins = self.service.get_users_by_role(UserRole.ADMIN)

        assert [u.username for u in admins] == ["alice"]

    def test_update_user_email_conflict(self):
        self.service.register_user("alice", "a@x.io")
        bob = self.service.register_user("bob", "b@x.io")

        with pytest.raises(EmailAlreadyRegisteredError):
            self.service.update_user(bob.id, {"email": "a@x.io"})

    def test_update_user_same_email_allowed(self):
        alice = self.service.register_user("alice", "a@x.io")

        updated = self.service.update_user(alice.id, {"email": "a@x.io", "username": "al"})

        assert updated.username == "al"

    def test_update_unknown_user(self):
        with pytest.raises(EntityNotFoundError):
            self.service.update_user("user_missing", {"username": "x"})

    def test_update_unknown_user_with_taken_email(self):
        self.service.register_user("alice", "a@x.io")

        with pytest.raises(EntityNotFoundError):
            self.service.update_user("user_missing", {"email": "a@x.io"})

    def test_delete_user(self):
        user = self.service.register_user("alice", "a@x.io")

        assert self.service.delete_user(user.id) is True
        assert self.service.delete_user(user.id) is False

    def test_write_operations_report_timings(self):
        self.service.register_user("alice", "a@x.io")
        with pytest.raises(EmailAlreadyRegisteredError):
            self.service.register_user("alice", "a@x.io")

        assert self.timings.count("UserService.register_user") == 2
        summary = self.timings.summary()["UserService.register_user"]
        assert summary["failures"] == 1


class TestPostService:
    def setup_method(self):
        self.timings = TimingRecorder()
        clock = FakeClock()
        self.users = UserRepository(clock=clock)
        self.posts = PostRepository(clock=clock)
        self.service = PostService(self.posts, self.users, timing_sink=self.timings)
        self.author = self.users.create(username="alice", email="a@x.io")

    def test_create_post_requires_author(self):
        with pytest.raises(EntityNotFoundError) as exc:
            self.service.create_post("user_missing", "Title", "Body")

        assert exc.value.entity_type == "Author"
        assert self.posts.count() == 0

    def test_create_and_publish(self):
        post = self.service.create_post(self.author.id, "Title", "Body", tags=["a"])
        assert post.published is False

        published = self.service.publish(post.id)

        assert published.published is True
        assert self.service.get_post(post.id).published is True

    def test_publish_unknown_post(self):
        with pytest.raises(EntityNotFoundError):
            self.service.publish("post_missing")

    def test_react(self):
        post = self.service.create_post(self.author.id, "Title", "Body")

        self.service.react(post.id, "like", 3)
        result = self.service.react(post.id, "like")

        assert result.reactions == {"like": 4}

    def test_react_unknown_post(self):
        with pytest.raises(EntityNotFoundError):
            self.service.react("post_missing", "like")

    def test_list_recent_newest_first(self):
        for i in range(5):
            self.service.create_post(self.author.id, f"Post {i}", "Body")

        recent = self.service.list_recent(limit=3)

        assert [p.title for p in recent] == ["Post 4", "Post 3", "Post 2"]

    def test_search_posts(self):
        bob = self.users.create(username="bob", email="b@x.io")
        p1 = self.service.create_post(self.author.id, "Python tips", "...", tags=["python"])
        self.service.create_post(self.author.id, "Rust notes", "...", tags=["rust"])
        p3 = self.service.create_post(bob.id, "More PYTHON", "...", tags=["python", "misc"])
        self.service.publish(p3.id)

        assert [p.id for p in self.service.search_posts(tag="python")] == [p1.id, p3.id]
        assert [p.id for p in self.service.search_posts(text="python")] == [p1.id, p3.id]
        assert [p.id for p in self.service.search_posts(author_id=bob.id)] == [p3.id]
        assert [p.id for p in self.service.search_posts(published=True)] == [p3.id]
        assert [p.id for p in self.service.search_posts(published=False, tag="python")] == [p1.id]

    def test_search_text_is_literal(self):
        self.service.create_post(self.author.id, "Costs (USD)", "...")
        self.service.create_post(self.author.id, "Costs USD", "...")

        result = self.service.search_posts(text="(USD)")

        assert [p.title for p in result] == ["Costs (USD)"]

    def test_search_sorted_and_paged(self):
        for title in ["b", "d", "a", "c"]:
            self.service.create_post(self.author.id, title, "...")

        result = self.service.search_posts(
            sort_by="title", sort_order=SortOrder.DESC, offset=1, limit=2
        )

        assert [p.title for p in result] == ["c", "b"]

    def test_delete_post(self):
        post = self.service.create_post(self.author.id, "Title", "Body")

        assert self.service.delete_post(post.id) is True
        assert self.service.delete_post(post.id) is False

    def test_write_operations_report_timings(self):
        post = self.service.create_post(self.author.id, "Title", "Body")
        self.service.publish(post.id)
        self.service.react(post.id, "like")

        assert self.timings.count("PostService.create_post") == 1
        assert self.timings.count("PostService.publish") == 1
        assert self.timings.count("PostService.react") == 1


class TestRetry:
    def setup_method(self):
        self.sleeps = []

    def test_returns_after_transient_failures(self):
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("transient")
            return "ok"

        result = retry(flaky, attempts=5, backoff_seconds=0.02, sleep=self.sleeps.append)

        assert result == "ok"
        assert calls["n"] == 3
        assert self.sleeps == pytest.approx([0.02, 0.04])

    def test_reraises_last_error(self):
        def always_fails():
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            retry(always_fails, attempts=3, sleep=self.sleeps.append)

        assert len(self.sleeps) == 2

    def test_only_retries_listed_errors(self):
        calls = {"n": 0}

        def fails():
            calls["n"] += 1
            raise KeyError("x")

        with pytest.raises(KeyError):
            retry(fails, attempts=3, retry_on=(ConnectionError,), sleep=self.sleeps.append)

        assert calls["n"] == 1

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            retry(lambda: None, attempts=0)
