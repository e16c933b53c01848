"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2025-08-02 12:30:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create cabins table
    op.create_table('cabins',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('discount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('capacity >= 1', name='ck_cabin_capacity_min'),
        sa.CheckConstraint('capacity <= 20', name='ck_cabin_capacity_max'),
        sa.CheckConstraint('price >= 0', name='ck_cabin_price_non_negative'),
        sa.CheckConstraint('discount >= 0', name='ck_cabin_discount_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cabins_name'), 'cabins', ['name'], unique=False)
    op.create_index(op.f('ix_cabins_status'), 'cabins', ['status'], unique=False)

    # Create booking_policies table
    op.create_table('booking_policies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('min_booking_length', sa.Integer(), nullable=False),
        sa.Column('max_booking_length', sa.Integer(), nullable=False),
        sa.Column('max_guests_per_booking', sa.Integer(), nullable=False),
        sa.Column('breakfast_price', sa.Float(), nullable=False),
        sa.Column('pet_fee', sa.Float(), nullable=False),
        sa.Column('parking_fee', sa.Float(), nullable=False),
        sa.Column('parking_included', sa.Boolean(), nullable=False),
        sa.Column('early_check_in_fee', sa.Float(), nullable=False),
        sa.Column('late_check_out_fee', sa.Float(), nullable=False),
        sa.Column('require_deposit', sa.Boolean(), nullable=False),
        sa.Column('deposit_percentage', sa.Float(), nullable=False),
        sa.Column('check_in_time', sa.String(length=5), nullable=False),
        sa.Column('check_out_time', sa.String(length=5), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('min_booking_length >= 1', name='ck_policy_min_length_positive'),
        sa.CheckConstraint('max_booking_length >= min_booking_length', name='ck_policy_max_length_gte_min'),
        sa.CheckConstraint('max_guests_per_booking >= 1', name='ck_policy_max_guests_positive'),
        sa.CheckConstraint(
            'deposit_percentage >= 0 AND deposit_percentage <= 100',
            name='ck_policy_deposit_percentage_range'
        ),
        sa.PrimaryKeyConstraint('id')
    )

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cabin_id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.String(length=128), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('num_nights', sa.Integer(), nullable=False),
        sa.Column('num_guests', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('cabin_price', sa.Float(), nullable=False),
        sa.Column('extras_price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('has_breakfast', sa.Boolean(), nullable=False),
        sa.Column('breakfast_price', sa.Float(), nullable=False),
        sa.Column('has_pets', sa.Boolean(), nullable=False),
        sa.Column('pet_fee', sa.Float(), nullable=False),
        sa.Column('has_parking', sa.Boolean(), nullable=False),
        sa.Column('parking_fee', sa.Float(), nullable=False),
        sa.Column('has_early_check_in', sa.Boolean(), nullable=False),
        sa.Column('early_check_in_fee', sa.Float(), nullable=False),
        sa.Column('has_late_check_out', sa.Boolean(), nullable=False),
        sa.Column('late_check_out_fee', sa.Float(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('deposit_paid', sa.Boolean(), nullable=False),
        sa.Column('deposit_amount', sa.Float(), nullable=False),
        sa.Column('remaining_amount', sa.Float(), nullable=False),
        sa.Column('observations', sa.Text(), nullable=True),
        sa.Column('special_requests', sa.JSON(), nullable=False),
        sa.Column('check_in_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('check_out_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('check_out_date > check_in_date', name='ck_booking_dates_ordered'),
        sa.CheckConstraint('num_nights >= 1', name='ck_booking_nights_positive'),
        sa.CheckConstraint('num_guests >= 1', name='ck_booking_guests_positive'),
        sa.CheckConstraint('total_price >= 0', name='ck_booking_total_non_negative'),
        sa.CheckConstraint('deposit_amount >= 0', name='ck_booking_deposit_non_negative'),
        sa.CheckConstraint('remaining_amount >= 0', name='ck_booking_remaining_non_negative'),
        sa.ForeignKeyConstraint(['cabin_id'], ['cabins.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_cabin_id'), 'bookings', ['cabin_id'], unique=False)
    op.create_index(op.f('ix_bookings_customer_id'), 'bookings', ['customer_id'], unique=False)
    op.create_index(op.f('ix_bookings_check_in_date'), 'bookings', ['check_in_date'], unique=False)
    op.create_index(op.f('ix_bookings_check_out_date'), 'bookings', ['check_out_date'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_is_paid'), 'bookings', ['is_paid'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)

    # Create booking_nights table
    op.create_table('booking_nights',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('cabin_id', sa.Uuid(), nullable=False),
        sa.Column('night', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cabin_id', 'night', name='uq_booking_night_cabin_night')
    )
    op.create_index(op.f('ix_booking_nights_booking_id'), 'booking_nights', ['booking_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('booking_nights')
    op.drop_table('bookings')
    op.drop_table('booking_policies')
    op.drop_table('cabins')
