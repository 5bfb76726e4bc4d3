"""create dispatch tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('customer_name', sa.String(length=200), nullable=False),
        sa.Column('customer_email', sa.String(length=320), nullable=False),
        sa.Column('customer_phone', sa.String(length=50), nullable=True),
        sa.Column('service_date', sa.Date(), nullable=True),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tour_id', sa.Integer(), nullable=True),
        sa.Column('tour_name', sa.String(length=200), nullable=True),
        sa.Column('booking_date', sa.Date(), nullable=True),
        sa.Column('number_of_people', sa.Integer(), nullable=True),
        sa.Column('service_type', sa.String(length=20), nullable=True),
        sa.Column('flight_number', sa.String(length=30), nullable=True),
        sa.Column('arrival_date', sa.Date(), nullable=True),
        sa.Column('arrival_time', sa.String(length=5), nullable=True),
        sa.Column('dropoff_location', sa.String(length=255), nullable=True),
        sa.Column('departure_flight_number', sa.String(length=30), nullable=True),
        sa.Column('departure_date', sa.Date(), nullable=True),
        sa.Column('departure_time', sa.String(length=5), nullable=True),
        sa.Column('pickup_location', sa.String(length=255), nullable=True),
        sa.Column('passengers', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_kind', 'bookings', ['kind'])
    op.create_index('ix_bookings_service_date', 'bookings', ['service_date'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])

    op.create_table(
        'drivers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('vehicle', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='available'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_drivers_id', 'drivers', ['id'])
    op.create_index('ix_drivers_name', 'drivers', ['name'])

    # No foreign key on booking_id: assignments outlive deleted bookings
    op.create_table(
        'driver_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('driver_id', sa.Integer(), sa.ForeignKey('drivers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('assignment_status', sa.String(length=20), nullable=False, server_default='assigned'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_driver_assignments_id', 'driver_assignments', ['id'])
    op.create_index('ix_driver_assignments_driver_id', 'driver_assignments', ['driver_id'])
    op.create_index('ix_driver_assignments_booking_id', 'driver_assignments', ['booking_id'])

    op.create_table(
        'outbox_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('topic', sa.String(length=255), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_outbox_events_id', 'outbox_events', ['id'])
    op.create_index('ix_outbox_events_status', 'outbox_events', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('outbox_events')
    op.drop_table('driver_assignments')
    op.drop_table('drivers')
    op.drop_table('bookings')
