"""create_catalog_tables

Revision ID: 5c1e9a7b2d40
Revises:
Create Date: 2026-10-17 00:00:00.000000+00:00

Creates users, videos, video_likes and comments. On PostgreSQL also adds
a GIN index over the title and description tsvector that serves the feed's
full-text match.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c1e9a7b2d40'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False,
                  comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """Create the catalog tables and their indexes."""
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('username', sa.String(length=50), nullable=False,
                  comment='Unique handle, shown as the display name'),
        sa.Column('is_active', sa.Boolean(), nullable=False,
                  comment='Whether the account may publish, like and comment'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'])
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    op.create_table(
        'videos',
        *_timestamps(),
        sa.Column('title', sa.String(length=255), nullable=False,
                  comment='Video title (non-empty)'),
        sa.Column('description', sa.Text(), nullable=False,
                  comment='Free-text description'),
        sa.Column('file_id', sa.String(length=255), nullable=False,
                  comment='File handle issued by the video host'),
        sa.Column('thumbnail_url', sa.String(length=1000), nullable=True,
                  comment='Custom thumbnail URL on the image host'),
        sa.Column('uploader_id', sa.Integer(), nullable=False,
                  comment='Owning user id (immutable)'),
        sa.Column('view_count', sa.Integer(), nullable=False,
                  comment='Number of recorded views'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
        sa.UniqueConstraint('file_id', name=op.f('uq_videos_file_id')),
    )
    op.create_index(op.f('ix_videos_created_at'), 'videos', ['created_at'])
    op.create_index(op.f('ix_videos_uploader_id'), 'videos', ['uploader_id'])

    op.create_table(
        'video_likes',
        *_timestamps(),
        sa.Column('video_id', sa.Integer(), nullable=False, comment='Liked video'),
        sa.Column('user_id', sa.Integer(), nullable=False,
                  comment='User who liked the video'),
        sa.ForeignKeyConstraint(
            ['video_id'], ['videos.id'],
            name=op.f('fk_video_likes_video_id_videos'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_video_likes')),
        sa.UniqueConstraint('video_id', 'user_id', name='uq_video_likes_video_user'),
    )
    op.create_index(op.f('ix_video_likes_created_at'), 'video_likes', ['created_at'])
    op.create_index(op.f('ix_video_likes_video_id'), 'video_likes', ['video_id'])
    op.create_index(op.f('ix_video_likes_user_id'), 'video_likes', ['user_id'])

    op.create_table(
        'comments',
        *_timestamps(),
        sa.Column('video_id', sa.Integer(), nullable=False,
                  comment='Commented video (back-reference)'),
        sa.Column('author_id', sa.Integer(), nullable=False, comment='Comment author'),
        sa.Column('text', sa.Text(), nullable=False, comment='Comment body (non-empty)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
    )
    op.create_index(op.f('ix_comments_created_at'), 'comments', ['created_at'])
    op.create_index(op.f('ix_comments_video_id'), 'comments', ['video_id'])
    op.create_index(op.f('ix_comments_author_id'), 'comments', ['author_id'])

    # Serves the feed's tsvector @@ plainto_tsquery match on PostgreSQL
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("""
            CREATE INDEX ix_videos_search_document
            ON videos
            USING gin (to_tsvector('english'::regconfig,
                coalesce(title, '') || ' ' || coalesce(description, '')))
        """)


def downgrade() -> None:
    """Drop the catalog tables."""
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP INDEX IF EXISTS ix_videos_search_document")

    op.drop_index(op.f('ix_comments_author_id'), table_name='comments')
    op.drop_index(op.f('ix_comments_video_id'), table_name='comments')
    op.drop_index(op.f('ix_comments_created_at'), table_name='comments')
    op.drop_table('comments')

    op.drop_index(op.f('ix_video_likes_user_id'), table_name='video_likes')
    op.drop_index(op.f('ix_video_likes_video_id'), table_name='video_likes')
    op.drop_index(op.f('ix_video_likes_created_at'), table_name='video_likes')
    op.drop_table('video_likes')

    op.drop_index(op.f('ix_videos_uploader_id'), table_name='videos')
    op.drop_index(op.f('ix_videos_created_at'), table_name='videos')
    op.drop_table('videos')

    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_created_at'), table_name='users')
    op.drop_table('users')
