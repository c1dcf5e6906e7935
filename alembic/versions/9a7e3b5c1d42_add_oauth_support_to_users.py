"""add oauth support to users

Revision ID: 9a7e3b5c1d42
Revises: 4f1c2a9d7b30
Create Date: 2025-12-04 14:00:00.000000

Google sign-in: accounts may now be reached by an external identity instead
of a password.

1. google_id: Google's user id, unique when present. The unique index is
   what prevents duplicate accounts when two first logins race.
2. provider: "local" or "google"
3. password_hash becomes optional
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9a7e3b5c1d42'
down_revision: Union[str, None] = '4f1c2a9d7b30'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add external identity columns to users."""
    op.add_column('users', sa.Column('google_id', sa.String(length=255), nullable=True))
    op.add_column(
        'users',
        sa.Column('provider', sa.String(length=50), server_default='local', nullable=False),
    )
    op.alter_column('users', 'password_hash', existing_type=sa.String(length=255), nullable=True)

    op.create_index(op.f('ix_users_google_id'), 'users', ['google_id'], unique=True)
    op.create_index(op.f('ix_users_provider'), 'users', ['provider'], unique=False)


def downgrade() -> None:
    """Remove external identity columns."""
    op.drop_index(op.f('ix_users_provider'), table_name='users')
    op.drop_index(op.f('ix_users_google_id'), table_name='users')
    op.alter_column('users', 'password_hash', existing_type=sa.String(length=255), nullable=False)
    op.drop_column('users', 'provider')
    op.drop_column('users', 'google_id')
