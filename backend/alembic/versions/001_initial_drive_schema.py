"""Create users, nodes, share_grants and share_links tables

Revision ID: 001_initial_drive_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '001_initial_drive_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

node_kind = sa.Enum('FILE', 'FOLDER', name='nodekind')
permission = sa.Enum('VIEW', 'EDIT', name='permission')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('picture', sa.String(), nullable=True),
        sa.Column('provider', sa.String(50), nullable=False, server_default='local'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'nodes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('kind', node_kind, nullable=False),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('nodes.id'), nullable=True),
        sa.Column('storage_key', sa.String(), nullable=True, unique=True),
        sa.Column('size_bytes', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.String(), nullable=True),
        sa.Column('trashed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('trashed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_nodes_id', 'nodes', ['id'])
    op.create_index('ix_nodes_owner_id', 'nodes', ['owner_id'])
    op.create_index('ix_nodes_parent_id', 'nodes', ['parent_id'])
    op.create_index('ix_nodes_owner_parent_created', 'nodes', ['owner_id', 'parent_id', 'created_at'])

    op.create_table(
        'share_grants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('node_id', sa.Uuid(), sa.ForeignKey('nodes.id'), nullable=False),
        sa.Column('grantee_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('granted_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('permission', permission, nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('node_id', 'grantee_user_id', name='uq_share_grant_node_grantee'),
    )
    op.create_index('ix_share_grants_id', 'share_grants', ['id'])
    op.create_index('ix_share_grants_node_id', 'share_grants', ['node_id'])
    op.create_index('ix_share_grants_grantee_user_id', 'share_grants', ['grantee_user_id'])

    op.create_table(
        'share_links',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('node_id', sa.Uuid(), sa.ForeignKey('nodes.id'), nullable=False, unique=True),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('permission', permission, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_share_links_id', 'share_links', ['id'])
    op.create_index('ix_share_links_token', 'share_links', ['token'], unique=True)


def downgrade() -> None:
    op.drop_table('share_links')
    op.drop_table('share_grants')
    op.drop_table('nodes')
    op.drop_table('users')
    permission.drop(op.get_bind(), checkfirst=True)
    node_kind.drop(op.get_bind(), checkfirst=True)
