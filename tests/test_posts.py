import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, NotFoundError
from app.modules.posts.comments.models.comment import Comment
from app.modules.posts.comments.schemas.comment import CommentCreate, ReplyCreate
from app.modules.posts.comments.services.comment import add_comment, add_reply, list_post_comments
from app.modules.posts.likes.services.like import count_likes, get_likes_by_post, like_post, unlike_post
from app.modules.posts.models.post import Post
from app.modules.posts.services.post import (
    delete_post,
    get_post,
    list_saved_posts,
    list_user_posts,
    save_post,
    unsave_post,
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class TestPosts:
    async def test_create_and_get_post_with_tags(self, db, create_user, create_post_for):
        author = await create_user("author")

        post = await create_post_for(author.id, "hello world", tags=["b", "a", "  "])
        fetched = await get_post(db, post.id)

        assert fetched.text == "hello world"
        assert fetched.user_id == author.id
        assert fetched.tags == ["a", "b"]

    async def test_get_missing_post(self, db):
        assert await get_post(db, str(uuid.uuid4())) is None

    async def test_post_by_missing_author_is_conflict(self, db, create_post_for):
        with pytest.raises(ConflictError):
            await create_post_for(str(uuid.uuid4()))

    async def test_list_user_posts_newest_first(self, db, create_user, create_post_for, set_created_at):
        author = await create_user("author")
        older = await create_post_for(author.id, "older")
        newer = await create_post_for(author.id, "newer")
        await set_created_at(Post, BASE_TIME, id=older.id)
        await set_created_at(Post, BASE_TIME + timedelta(hours=1), id=newer.id)

        assert [p.id for p in await list_user_posts(db, author.id)] == [newer.id, older.id]
        assert [p.id for p in await list_user_posts(db, author.id, skip=1, limit=1)] == [older.id]

    async def test_delete_post(self, db, create_user, create_post_for):
        author = await create_user("author")
        post = await create_post_for(author.id)

        await delete_post(db, post.id)

        assert await get_post(db, post.id) is None
        with pytest.raises(NotFoundError):
            await delete_post(db, post.id)


class TestLikes:
    async def test_like_once_per_user(self, db, create_user, create_post_for):
        author = await create_user("author")
        fan = await create_user("fan")
        post = await create_post_for(author.id)

        like = await like_post(db, post.id, fan.id)
        assert like.user_id == fan.id

        with pytest.raises(ConflictError):
            await like_post(db, post.id, fan.id)
        assert await count_likes(db, post.id) == 1
        assert [l.user_id for l in await get_likes_by_post(db, post.id)] == [fan.id]

    async def test_unlike(self, db, create_user, create_post_for):
        author = await create_user("author")
        post = await create_post_for(author.id)
        await like_post(db, post.id, author.id)

        assert await unlike_post(db, post.id, author.id) is True
        assert await unlike_post(db, post.id, author.id) is False
        assert await count_likes(db, post.id) == 0


class TestSavedPosts:
    async def test_save_is_idempotent(self, db, create_user, create_post_for):
        author = await create_user("author")
        reader = await create_user("reader")
        post = await create_post_for(author.id)

        first = await save_post(db, post.id, reader.id)
        second = await save_post(db, post.id, reader.id)

        assert first.id == second.id
        assert [p.id for p in await list_saved_posts(db, reader.id)] == [post.id]

    async def test_unsave(self, db, create_user, create_post_for):
        author = await create_user("author")
        post = await create_post_for(author.id)
        await save_post(db, post.id, author.id)

        assert await unsave_post(db, post.id, author.id) is True
        assert await unsave_post(db, post.id, author.id) is False
        assert await list_saved_posts(db, author.id) == []

    async def test_save_missing_post_is_conflict(self, db, create_user):
        reader = await create_user("reader")
        with pytest.raises(ConflictError):
            await save_post(db, str(uuid.uuid4()), reader.id)


class TestComments:
    async def test_comments_with_replies_newest_first(self, db, create_user, create_post_for, set_created_at):
        author = await create_user("author")
        reader = await create_user("reader")
        post = await create_post_for(author.id)
        first = await add_comment(db, post.id, reader.id, CommentCreate(text="first"))
        second = await add_comment(db, post.id, author.id, CommentCreate(text="second"))
        await set_created_at(Comment, BASE_TIME, id=first.id)
        await set_created_at(Comment, BASE_TIME + timedelta(minutes=5), id=second.id)
        reply = await add_reply(db, first.id, author.id, ReplyCreate(text="thanks"))

        comments = await list_post_comments(db, post.id)

        assert [c.id for c in comments] == [second.id, first.id]
        assert comments[0].replies == []
        assert [r.id for r in comments[1].replies] == [reply.id]
        assert comments[1].post_id == post.id

    async def test_comment_on_missing_post_leaves_nothing(self, db, create_user):
        reader = await create_user("reader")

        with pytest.raises(ConflictError):
            await add_comment(db, str(uuid.uuid4()), reader.id, CommentCreate(text="lost"))
        orphaned = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()
        assert orphaned == 0

    async def test_reply_to_missing_comment(self, db, create_user):
        reader = await create_user("reader")
        with pytest.raises(ConflictError):
            await add_reply(db, str(uuid.uuid4()), reader.id, ReplyCreate(text="?"))

    async def test_no_comments(self, db, create_user, create_post_for):
        author = await create_user("author")
        post = await create_post_for(author.id)
        assert await list_post_comments(db, post.id) == []
