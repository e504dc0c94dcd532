"""initial schema

Revision ID: 3b8d2c41f0a7
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '3b8d2c41f0a7'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users
    op.create_table('users',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), server_default='', nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email')
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)
    op.create_index('idx_users_active', 'users', ['active'], unique=False)

    # Articles
    op.create_table('articles',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), server_default='', nullable=False),
        sa.Column('body', sa.Text(), server_default='', nullable=False),
        sa.Column('author_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_articles_slug')
    )
    op.create_index('idx_articles_author_id', 'articles', ['author_id'], unique=False)
    op.create_index('idx_articles_status', 'articles', ['status'], unique=False)

    # Tags
    op.create_table('tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_tags_name')
    )

    op.create_table('article_tags',
        sa.Column('article_id', sa.String(length=255), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('article_id', 'tag_id')
    )
    op.create_index('idx_article_tags_tag_id', 'article_tags', ['tag_id'], unique=False)

    # Comments
    op.create_table('comments',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('article_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), server_default='', nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_comments_article_id', 'comments', ['article_id'], unique=False)
    op.create_index('idx_comments_user_id', 'comments', ['user_id'], unique=False)

    # Jobs
    op.create_table('import_jobs',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=False),
        sa.Column('format', sa.String(length=20), nullable=False),
        sa.Column('source_location', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('total_records', sa.Integer(), nullable=False),
        sa.Column('processed_count', sa.Integer(), nullable=False),
        sa.Column('success_count', sa.Integer(), nullable=False),
        sa.Column('fail_count', sa.Integer(), nullable=False),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_import_jobs_idempotency_key')
    )
    op.create_index('idx_import_jobs_status', 'import_jobs', ['status'], unique=False)

    op.create_table('export_jobs',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=False),
        sa.Column('format', sa.String(length=20), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('total_records', sa.Integer(), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=True),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_export_jobs_idempotency_key')
    )
    op.create_index('idx_export_jobs_status', 'export_jobs', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_export_jobs_status', table_name='export_jobs')
    op.drop_table('export_jobs')
    op.drop_index('idx_import_jobs_status', table_name='import_jobs')
    op.drop_table('import_jobs')
    op.drop_index('idx_comments_user_id', table_name='comments')
    op.drop_index('idx_comments_article_id', table_name='comments')
    op.drop_table('comments')
    op.drop_index('idx_article_tags_tag_id', table_name='article_tags')
    op.drop_table('article_tags')
    op.drop_table('tags')
    op.drop_index('idx_articles_status', table_name='articles')
    op.drop_index('idx_articles_author_id', table_name='articles')
    op.drop_table('articles')
    op.drop_index('idx_users_active', table_name='users')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
