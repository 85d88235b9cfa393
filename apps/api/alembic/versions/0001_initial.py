"""Initial schema - users, organizations, tickets and votes

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Enum columns are VARCHAR with CHECK constraints so the same revision runs on
PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=32)


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users (mirrored from the identity provider)
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        *_timestamps(),
    )

    # ==========================================================================
    # Organizations (one per owner)
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('name_lower', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('website', sa.String(200), nullable=True),
        sa.Column('github', sa.String(200), nullable=True),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('created_by', name='uq_organizations_created_by'),
    )
    op.create_index('idx_organizations_name_lower', 'organizations', ['name_lower'])

    # ==========================================================================
    # Tickets
    # ==========================================================================
    op.create_table(
        'tickets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reported_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String(2000), nullable=False),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('votes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('priority', _enum('ck_tickets_ticket_priority', 'none', 'low', 'medium', 'high'), nullable=False),
        sa.Column('status', _enum('ck_tickets_ticket_status', 'open', 'in-progress', 'closed'), nullable=False),
        sa.Column('tag', _enum('ck_tickets_ticket_tag', 'bug', 'tweak', 'feature'), nullable=False),
        sa.Column('last_triaged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('triage_status', _enum('ck_tickets_triage_status', 'pending', 'triaged'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('votes >= 0', name='ck_tickets_votes_non_negative'),
    )
    op.create_index('idx_tickets_org_created', 'tickets', ['organization_id', 'created_at'])
    op.create_index('idx_tickets_reported_by', 'tickets', ['reported_by'])

    # ==========================================================================
    # Votes (at most one per user and ticket)
    # ==========================================================================
    op.create_table(
        'votes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'ticket_id', name='uq_votes_user_ticket'),
    )
    op.create_index('idx_votes_user', 'votes', ['user_id'])
    op.create_index('idx_votes_ticket', 'votes', ['ticket_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('votes')
    op.drop_table('tickets')
    op.drop_table('organizations')
    op.drop_table('users')
