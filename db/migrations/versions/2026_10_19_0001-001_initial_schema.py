"""Initial schema - create floors, tables, bookings and waiting_list tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

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
    """Create initial database tables."""
    # Create floors table
    op.create_table(
        'floors',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('floor_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_floors'))
    )
    op.create_index(op.f('ix_floors_created_at'), 'floors', ['created_at'], unique=False)

    # Create tables table
    op.create_table(
        'tables',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('floor_id', sa.String(length=36), nullable=True),
        sa.Column('table_number', sa.String(length=20), nullable=False),
        sa.Column('size', sa.String(length=20), nullable=False),
        sa.Column('seats', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('occupied_since', sa.DateTime(), nullable=True),
        sa.Column('available_in_minutes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['floor_id'], ['floors.id'], name=op.f('fk_tables_floor_id_floors')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tables'))
    )
    op.create_index(op.f('ix_tables_floor_id'), 'tables', ['floor_id'], unique=False)
    op.create_index(op.f('ix_tables_status'), 'tables', ['status'], unique=False)
    op.create_index(op.f('ix_tables_created_at'), 'tables', ['created_at'], unique=False)

    # Create bookings table
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('table_id', sa.String(length=36), nullable=False),
        sa.Column('customer_name', sa.String(length=100), nullable=False),
        sa.Column('mobile', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('people_count', sa.Integer(), nullable=True),
        sa.Column('booking_type', sa.String(length=20), nullable=False),
        sa.Column('booking_time', sa.DateTime(), nullable=True),
        sa.Column('booking_date', sa.Date(), nullable=True),
        sa.Column('booking_time_slot', sa.String(length=8), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('confirmation_status', sa.String(length=20), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('delay_minutes', sa.Integer(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('notifications_sent', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['table_id'], ['tables.id'], name=op.f('fk_bookings_table_id_tables')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_bookings'))
    )
    op.create_index(op.f('ix_bookings_table_id'), 'bookings', ['table_id'], unique=False)
    op.create_index(op.f('ix_bookings_booking_date'), 'bookings', ['booking_date'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)
    op.create_index('ix_bookings_table_status', 'bookings', ['table_id', 'status'], unique=False)

    # Create waiting_list table
    op.create_table(
        'waiting_list',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_name', sa.String(length=100), nullable=False),
        sa.Column('mobile', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('people_count', sa.Integer(), nullable=False),
        sa.Column('preferred_table_size', sa.String(length=20), nullable=False),
        sa.Column('booking_type', sa.String(length=20), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=True),
        sa.Column('booking_time_slot', sa.String(length=8), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('estimated_wait_minutes', sa.Integer(), nullable=True),
        sa.Column('notified_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_waiting_list'))
    )
    op.create_index(op.f('ix_waiting_list_booking_date'), 'waiting_list', ['booking_date'], unique=False)
    op.create_index(op.f('ix_waiting_list_status'), 'waiting_list', ['status'], unique=False)
    op.create_index(op.f('ix_waiting_list_created_at'), 'waiting_list', ['created_at'], unique=False)


def downgrade() -> None:
    """Drop all tables."""
    # Drop waiting_list table and indexes
    op.drop_index(op.f('ix_waiting_list_created_at'), table_name='waiting_list')
    op.drop_index(op.f('ix_waiting_list_status'), table_name='waiting_list')
    op.drop_index(op.f('ix_waiting_list_booking_date'), table_name='waiting_list')
    op.drop_table('waiting_list')

    # Drop bookings table and indexes
    op.drop_index('ix_bookings_table_status', table_name='bookings')
    op.drop_index(op.f('ix_bookings_created_at'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_status'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_booking_date'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_table_id'), table_name='bookings')
    op.drop_table('bookings')

    # Drop tables table and indexes
    op.drop_index(op.f('ix_tables_created_at'), table_name='tables')
    op.drop_index(op.f('ix_tables_status'), table_name='tables')
    op.drop_index(op.f('ix_tables_floor_id'), table_name='tables')
    op.drop_table('tables')

    # Drop floors table and indexes
    op.drop_index(op.f('ix_floors_created_at'), table_name='floors')
    op.drop_table('floors')
