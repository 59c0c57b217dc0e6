"""Create menu tree tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'menus',
        sa.Column('record_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('icon', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('router', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('parent_path', sa.String(length=518), nullable=False, server_default=''),
        sa.Column('creator', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('record_id')
    )
    op.create_index(op.f('ix_menus_parent_id'), 'menus', ['parent_id'], unique=False)
    # Prefix (subtree) queries on parent_path need a pattern-capable index on PostgreSQL
    op.create_index(
        op.f('ix_menus_parent_path'),
        'menus',
        ['parent_path'],
        unique=False,
        postgresql_ops={'parent_path': 'varchar_pattern_ops'},
    )

    op.create_table(
        'menu_actions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('menu_id', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(['menu_id'], ['menus.record_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_menu_actions_menu_id'), 'menu_actions', ['menu_id'], unique=False)

    op.create_table(
        'menu_resources',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('menu_id', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('method', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('path', sa.String(length=255), nullable=False, server_default=''),
        sa.ForeignKeyConstraint(['menu_id'], ['menus.record_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_menu_resources_menu_id'), 'menu_resources', ['menu_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_menu_resources_menu_id'), table_name='menu_resources')
    op.drop_table('menu_resources')
    op.drop_index(op.f('ix_menu_actions_menu_id'), table_name='menu_actions')
    op.drop_table('menu_actions')
    op.drop_index(op.f('ix_menus_parent_path'), table_name='menus')
    op.drop_index(op.f('ix_menus_parent_id'), table_name='menus')
    op.drop_table('menus')
