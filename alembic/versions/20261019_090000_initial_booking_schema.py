"""initial booking schema: schedules, slots, appointments, payments, ratings

Revision ID: 20261019_090000
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_090000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps(with_updated: bool = True) -> list:
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if with_updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'schedule_days',
        sa.Column('id', BigIntId, primary_key=True, autoincrement=True),
        sa.Column('doctor_id', sa.String(64), nullable=False),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('clinic_id', sa.String(64), nullable=False),
        sa.Column('room_id', sa.String(64), nullable=True),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint('doctor_id', 'day_of_week', name='uq_schedule_days_doctor_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_days_day_of_week'),
        sa.CheckConstraint('slot_duration_minutes > 0', name='ck_schedule_days_duration'),
    )
    op.create_index('ix_schedule_days_doctor_id', 'schedule_days', ['doctor_id'])

    op.create_table(
        'slots',
        sa.Column('id', BigIntId, primary_key=True, autoincrement=True),
        sa.Column('doctor_id', sa.String(64), nullable=False),
        sa.Column('clinic_id', sa.String(64), nullable=False),
        sa.Column('room_id', sa.String(64), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(5), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='available'),
        *_timestamps(),
        sa.UniqueConstraint('doctor_id', 'clinic_id', 'date', 'time', name='uq_slots_doctor_clinic_date_time'),
    )
    op.create_index('ix_slots_doctor_date_status', 'slots', ['doctor_id', 'date', 'status'])

    op.create_table(
        'appointments',
        sa.Column('id', BigIntId, primary_key=True, autoincrement=True),
        sa.Column('patient_id', sa.String(64), nullable=False),
        sa.Column('doctor_id', sa.String(64), nullable=False),
        sa.Column('clinic_id', sa.String(64), nullable=False),
        sa.Column('room_id', sa.String(64), nullable=True),
        sa.Column('slot_id', BigIntId, sa.ForeignKey('slots.id'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='booked'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', sa.String(16), nullable=False),
        sa.Column('payment_status', sa.String(16), nullable=False),
        sa.Column('payment_transaction_id', sa.String(64), nullable=False),
        sa.Column('payment_timestamp', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    # Second safety net behind the atomic claim
    op.create_index(
        'uq_appointments_active_slot_id',
        'appointments',
        ['slot_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index('ix_appointments_patient_id', 'appointments', ['patient_id'])
    op.create_index('ix_appointments_doctor_id', 'appointments', ['doctor_id'])

    op.create_table(
        'payments',
        sa.Column('id', BigIntId, primary_key=True, autoincrement=True),
        sa.Column('appointment_id', BigIntId, sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('patient_id', sa.String(64), nullable=False),
        sa.Column('doctor_id', sa.String(64), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('method', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('transaction_id', sa.String(64), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
    )
    op.create_index('ix_payments_timestamp', 'payments', ['timestamp'])
    op.create_index('ix_payments_doctor_id_timestamp', 'payments', ['doctor_id', 'timestamp'])
    op.create_index('ix_payments_patient_id_timestamp', 'payments', ['patient_id', 'timestamp'])

    op.create_table(
        'ratings',
        sa.Column('id', BigIntId, primary_key=True, autoincrement=True),
        sa.Column('appointment_id', BigIntId, sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('patient_id', sa.String(64), nullable=False),
        sa.Column('doctor_id', sa.String(64), nullable=False),
        sa.Column('rating', sa.SmallInteger(), nullable=False),
        sa.Column('review', sa.String(1000), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('appointment_id', name='uq_ratings_appointment_id'),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_ratings_rating_range'),
    )
    op.create_index('ix_ratings_doctor_id_created_at', 'ratings', ['doctor_id', 'created_at'])
    op.create_index('ix_ratings_patient_id_created_at', 'ratings', ['patient_id', 'created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_ratings_patient_id_created_at', table_name='ratings')
    op.drop_index('ix_ratings_doctor_id_created_at', table_name='ratings')
    op.drop_table('ratings')

    op.drop_index('ix_payments_patient_id_timestamp', table_name='payments')
    op.drop_index('ix_payments_doctor_id_timestamp', table_name='payments')
    op.drop_index('ix_payments_timestamp', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_appointments_doctor_id', table_name='appointments')
    op.drop_index('ix_appointments_patient_id', table_name='appointments')
    op.drop_index('uq_appointments_active_slot_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_slots_doctor_date_status', table_name='slots')
    op.drop_table('slots')

    op.drop_index('ix_schedule_days_doctor_id', table_name='schedule_days')
    op.drop_table('schedule_days')
