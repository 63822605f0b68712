"""initial migration

Revision ID: initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'initial'
down_revision = None
branch_labels = None
depends_on = None

role_enum = sa.Enum('user', 'admin', 'manager', name='role')
gender_enum = sa.Enum('male', 'female', name='gender')
notification_type_enum = sa.Enum('like', 'follow', name='type')

def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
    ]

def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', role_enum, nullable=False, server_default='user'),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('usernameIndex', 'users', [sa.text('lower(username)')], unique=True)

    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_pic', sa.Text(), nullable=True),
        sa.Column('gender', gender_enum, nullable=True),
        sa.Column('is_banned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    # Create followers table
    op.create_table(
        'followers',
        sa.Column('follower_id', sa.String(36), nullable=False),
        sa.Column('followed_id', sa.String(36), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['follower_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['followed_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('follower_id', 'followed_id')
    )
    op.create_index('followedIndex_followers', 'followers', ['followed_id', 'created_at'])
    op.create_index('followerIndex_followers', 'followers', ['follower_id', 'created_at'])

    # Create posts table
    op.create_table(
        'posts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('image', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_posts_user_id', 'posts', ['user_id'])

    op.create_table(
        'post_tags',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('post_id', sa.String(36), nullable=True),
        sa.Column('tag', sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_post_tags_post_id', 'post_tags', ['post_id'])

    op.create_table(
        'save_posts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('post_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_save_posts_post_id', 'save_posts', ['post_id'])
    op.create_index('ix_save_posts_user_id', 'save_posts', ['user_id'])

    op.create_table(
        'post_likes',
        sa.Column('post_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('post_id', 'user_id')
    )
    op.create_index('ix_post_likes_user_id', 'post_likes', ['user_id'])

    # Create comments tables
    op.create_table(
        'comments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('author_id', sa.String(36), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_comments_author_id', 'comments', ['author_id'])

    op.create_table(
        'post_comments',
        sa.Column('post_id', sa.String(36), nullable=False),
        sa.Column('comment_id', sa.String(36), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('post_id', 'comment_id')
    )

    op.create_table(
        'replies',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('comment_id', sa.String(36), nullable=False),
        sa.Column('author_id', sa.String(36), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_replies_comment_id', 'replies', ['comment_id'])
    op.create_index('ix_replies_author_id', 'replies', ['author_id'])

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('from', sa.String(36), nullable=False),
        sa.Column('to', sa.String(36), nullable=False),
        sa.Column('type', notification_type_enum, nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['from'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_from', 'notifications', ['from'])
    op.create_index('ix_notifications_to', 'notifications', ['to'])

def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('replies')
    op.drop_table('post_comments')
    op.drop_table('comments')
    op.drop_table('post_likes')
    op.drop_table('save_posts')
    op.drop_table('post_tags')
    op.drop_table('posts')
    op.drop_table('followers')
    op.drop_table('profiles')
    op.drop_index('usernameIndex', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    notification_type_enum.drop(bind, checkfirst=True)
    gender_enum.drop(bind, checkfirst=True)
    role_enum.drop(bind, checkfirst=True)
