# Import all models here so Alembic and create_all can detect them
from app.db.session import Base

# Import all models below
from app.modules.user_management.models.user import User, Profile
from app.modules.follows.models.follow import Follow
from app.modules.posts.models.post import Post, PostTag, SavedPost
from app.modules.posts.comments.models.comment import Comment, PostComment, Reply
from app.modules.posts.likes.models.like import PostLike
from app.modules.notifications.models.notification import Notification
