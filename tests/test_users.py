import uuid

import pytest
from sqlalchemy import func, or_, select

from app.core.exceptions import ConflictError, NotFoundError, ValidationFailureError
from app.core.security import verify_password
from app.modules.follows.models.follow import Follow
from app.modules.follows.services.follow import create_follow_edge
from app.modules.notifications.models.notification import Notification
from app.modules.notifications.services.notification import insert_notification
from app.modules.posts.comments.models.comment import Comment, PostComment, Reply
from app.modules.posts.comments.schemas.comment import CommentCreate, ReplyCreate
from app.modules.posts.comments.services.comment import add_comment, add_reply
from app.modules.posts.likes.models.like import PostLike
from app.modules.posts.likes.services.like import like_post
from app.modules.posts.models.post import Post, PostTag, SavedPost
from app.modules.posts.services.post import save_post
from app.modules.user_management.models.user import Profile, User
from app.modules.user_management.schemas.user import AccountUpdate, ProfileUpdate, UserCreate
from app.modules.user_management.services.user import (
    check_page,
    count_users,
    delete_user,
    find_user,
    find_users_by_ids,
    get_profile,
    list_user_ids,
    list_users_excluding,
    register_user,
    search_users_by_username,
    update_account,
    update_profile,
)


async def _count(db, stmt):
    return (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()


class TestRegistration:
    async def test_register_creates_user_and_profile(self, db, create_user):
        user = await create_user("alice", full_name="Alice Liddell", gender="female")

        assert user.username == "alice"
        assert user.email == "alice@example.com"
        assert user.role == "user"
        assert user.profile.full_name == "Alice Liddell"
        assert user.profile.is_banned is False
        assert "hashed_password" not in user.model_dump()

        stored = (await db.execute(select(User.hashed_password).where(User.id == user.id))).scalar_one()
        assert stored != "correct horse battery"
        assert verify_password("correct horse battery", stored)
        assert not verify_password("wrong", stored)

    async def test_email_is_lowercased(self, create_user):
        user = await create_user("bob", email="Bob@Example.COM")
        assert user.email == "bob@example.com"

    async def test_username_unique_regardless_of_case(self, db, create_user):
        await create_user("alice")
        with pytest.raises(ConflictError):
            await create_user("ALICE", email="other@example.com")
        assert await count_users(db) == 1

    async def test_duplicate_email_is_conflict(self, db, create_user):
        await create_user("alice", email="shared@example.com")
        with pytest.raises(ConflictError):
            await create_user("bob", email="SHARED@example.com")
        assert await count_users(db) == 1

    async def test_failed_profile_insert_leaves_no_user(self, db):
        # Skips validation so the invalid gender reaches the profiles CHECK constraint
        user_in = UserCreate.model_construct(
            email="carol@example.com", username="carol", password="pw", gender="other"
        )
        with pytest.raises(ConflictError):
            await register_user(db, user_in)

        assert await count_users(db) == 0
        assert await find_user(db, username="carol") is None
        assert await _count(db, select(Profile)) == 0

    def test_blank_username_rejected_by_schema(self):
        with pytest.raises(ValueError):
            UserCreate(email="x@example.com", username="   ", password="pw")


class TestLookup:
    async def test_find_user_by_id_username_or_email(self, db, create_user):
        alice = await create_user("Alice")

        assert (await find_user(db, user_id=alice.id)).username == "Alice"
        assert (await find_user(db, username="alice")).id == alice.id
        assert (await find_user(db, email="ALICE@example.com")).id == alice.id
        assert await find_user(db, user_id=str(uuid.uuid4())) is None

    async def test_find_user_needs_a_criterion(self, db):
        with pytest.raises(ValidationFailureError):
            await find_user(db)

    async def test_search_is_case_insensitive_substring(self, db, create_user):
        for name in ("alice", "malory", "bob", "ALBERT"):
            await create_user(name)

        found = {u.username for u in await search_users_by_username(db, "Al")}
        assert found == {"alice", "malory", "ALBERT"}

    async def test_search_orders_by_username_descending(self, db, create_user):
        for name in ("anna", "hannah", "joanna"):
            await create_user(name)

        found = [u.username for u in await search_users_by_username(db, "ann")]
        assert found == ["joanna", "hannah", "anna"]

    async def test_search_paginates(self, db, create_user):
        for name in ("anna", "hannah", "joanna"):
            await create_user(name)

        page = await search_users_by_username(db, "ann", offset=1, limit=1)
        assert [u.username for u in page] == ["hannah"]

    async def test_search_matches_wildcards_literally(self, db, create_user):
        await create_user("100%real", email="real@example.com")
        await create_user("plain")
        await create_user("under_score", email="under@example.com")
        await create_user("underxscore", email="underx@example.com")

        assert [u.username for u in await search_users_by_username(db, "%")] == ["100%real"]
        assert [u.username for u in await search_users_by_username(db, "r_s")] == ["under_score"]

    async def test_search_pattern_is_not_trimmed(self, db, create_user):
        for name in ("anna", "joanna"):
            await create_user(name)

        assert await search_users_by_username(db, " ann") == []
        assert len(await search_users_by_username(db, "ann")) == 2

    async def test_search_rejects_empty_pattern(self, db):
        with pytest.raises(ValidationFailureError):
            await search_users_by_username(db, "  ")

    async def test_find_users_by_ids(self, db, create_user):
        a = await create_user("a1")
        b = await create_user("b1")
        await create_user("c1")

        assert await find_users_by_ids(db, []) == []
        found = await find_users_by_ids(db, [a.id, b.id])
        assert {u.id for u in found} == {a.id, b.id}
        assert len(await find_users_by_ids(db, [a.id, b.id], limit=1)) == 1

    async def test_list_user_ids_and_count(self, db, create_user):
        a = await create_user("a1")
        b = await create_user("b1")

        assert set(await list_user_ids(db)) == {a.id, b.id}
        assert await count_users(db) == 2

    async def test_discover_flags_followed_users(self, db, create_user):
        me = await create_user("me")
        followed = await create_user("followed")
        stranger = await create_user("stranger")
        await create_follow_edge(db, me.id, followed.id)
        await create_follow_edge(db, stranger.id, followed.id)

        listed = {u.id: u for u in await list_users_excluding(db, me.id)}

        assert me.id not in listed
        assert listed[followed.id].followed_by_current_user is True
        assert {f.follower_id for f in listed[followed.id].followers} == {me.id, stranger.id}
        assert listed[stranger.id].followed_by_current_user is False
        assert listed[stranger.id].followers == []

    def test_check_page(self):
        check_page(1, 0)
        with pytest.raises(ValidationFailureError):
            check_page(0)
        with pytest.raises(ValidationFailureError):
            check_page(10, -1)


class TestUpdates:
    async def test_update_profile_only_touches_set_fields(self, db, create_user):
        user = await create_user("alice", full_name="Alice", bio="old bio")

        profile = await update_profile(db, user.id, ProfileUpdate(bio="new bio"))

        assert profile.bio == "new bio"
        assert profile.full_name == "Alice"
        assert (await get_profile(db, user.id)).bio == "new bio"

    async def test_update_profile_of_missing_user(self, db):
        with pytest.raises(NotFoundError):
            await update_profile(db, str(uuid.uuid4()), ProfileUpdate(bio="x"))

    async def test_get_profile_missing_is_none(self, db):
        assert await get_profile(db, str(uuid.uuid4())) is None

    async def test_update_account_password(self, db, create_user):
        user = await create_user("alice")

        await update_account(db, user.id, AccountUpdate(password="new secret"))

        stored = (await db.execute(select(User.hashed_password).where(User.id == user.id))).scalar_one()
        assert verify_password("new secret", stored)

    async def test_update_account_email_and_username(self, db, create_user):
        user = await create_user("alice")

        updated = await update_account(db, user.id, AccountUpdate(email="New@Example.com", username="alicia"))

        assert updated.email == "new@example.com"
        assert updated.username == "alicia"

    async def test_update_account_conflict(self, db, create_user):
        await create_user("alice")
        bob = await create_user("bob")
        with pytest.raises(ConflictError):
            await update_account(db, bob.id, AccountUpdate(username="Alice"))

    async def test_update_account_missing_user(self, db):
        with pytest.raises(NotFoundError):
            await update_account(db, str(uuid.uuid4()), AccountUpdate(username="ghost"))

    async def test_update_account_with_nothing_to_change(self, db, create_user):
        user = await create_user("alice")
        with pytest.raises(ValidationFailureError):
            await update_account(db, user.id, AccountUpdate())


class TestDeleteUser:
    async def test_delete_cascades_to_everything_the_user_owns(self, db, create_user, create_post_for):
        alice = await create_user("alice")
        bob = await create_user("bob")
        await create_follow_edge(db, alice.id, bob.id)
        await create_follow_edge(db, bob.id, alice.id)
        post = await create_post_for(alice.id, tags=["intro"])
        bob_post = await create_post_for(bob.id)
        alice_comment = await add_comment(db, bob_post.id, alice.id, CommentCreate(text="hi bob"))
        bob_comment = await add_comment(db, post.id, bob.id, CommentCreate(text="hi alice"))
        await add_reply(db, bob_comment.id, alice.id, ReplyCreate(text="thanks"))
        await like_post(db, bob_post.id, alice.id)
        await like_post(db, post.id, bob.id)
        await save_post(db, bob_post.id, alice.id)
        await insert_notification(db, alice.id, bob.id, "follow")
        await insert_notification(db, bob.id, alice.id, "follow")

        await delete_user(db, alice.id)

        assert await find_user(db, user_id=alice.id) is None
        assert await _count(db, select(Profile).where(Profile.user_id == alice.id)) == 0
        assert await _count(db, select(Follow).where(
            or_(Follow.follower_id == alice.id, Follow.followed_id == alice.id))) == 0
        assert await _count(db, select(Post).where(Post.user_id == alice.id)) == 0
        assert await _count(db, select(PostTag).where(PostTag.post_id == post.id)) == 0
        assert await _count(db, select(Comment).where(Comment.id == alice_comment.id)) == 0
        assert await _count(db, select(PostComment).where(PostComment.post_id == post.id)) == 0
        assert await _count(db, select(Reply).where(Reply.author_id == alice.id)) == 0
        assert await _count(db, select(PostLike).where(
            or_(PostLike.user_id == alice.id, PostLike.post_id == post.id))) == 0
        assert await _count(db, select(SavedPost).where(SavedPost.user_id == alice.id)) == 0
        assert await _count(db, select(Notification).where(
            or_(Notification.from_id == alice.id, Notification.to_id == alice.id))) == 0

        # Bob's own rows survive
        assert await find_user(db, user_id=bob.id) is not None
        assert await _count(db, select(Post).where(Post.user_id == bob.id)) == 1
        assert await _count(db, select(Comment).where(Comment.id == bob_comment.id)) == 1

    async def test_delete_missing_user(self, db):
        with pytest.raises(NotFoundError):
            await delete_user(db, str(uuid.uuid4()))
