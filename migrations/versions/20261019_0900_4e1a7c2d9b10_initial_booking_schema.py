"""initial booking schema

Revision ID: 4e1a7c2d9b10
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4e1a7c2d9b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create routes table
    op.create_table(
        'routes',
        sa.Column('route_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('route_number', sa.String(length=20), nullable=False),
        sa.Column('route_name', sa.String(length=150), nullable=False),
        sa.Column('start_location', sa.String(length=255), nullable=True),
        sa.Column('end_location', sa.String(length=255), nullable=True),
        sa.Column('fare', sa.Float(), nullable=False, server_default='0'),
        sa.Column('departure_time', sa.Time(), nullable=True),
        sa.Column('arrival_time', sa.Time(), nullable=True),
        sa.Column('total_capacity', sa.Integer(), nullable=False, server_default='40'),
        sa.Column('status', sa.String(length=8), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('route_id'),
        sa.UniqueConstraint('route_number')
    )
    op.create_index('ix_routes_route_id', 'routes', ['route_id'])

    # Create students table
    op.create_table(
        'students',
        sa.Column('student_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('allocated_route_id', sa.Integer(), nullable=True),
        sa.Column('boarding_stop', sa.String(length=150), nullable=True),
        sa.Column('transport_enrolled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('fee_paid_until', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['allocated_route_id'], ['routes.route_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('student_id')
    )
    op.create_index('ix_students_student_id', 'students', ['student_id'])

    # Create schedules table; the check constraints keep the seat ledger balanced
    op.create_table(
        'schedules',
        sa.Column('schedule_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('route_id', sa.Integer(), nullable=False),
        sa.Column('schedule_date', sa.Date(), nullable=False),
        sa.Column('departure_time', sa.Time(), nullable=True),
        sa.Column('arrival_time', sa.Time(), nullable=True),
        sa.Column('total_seats', sa.Integer(), nullable=False),
        sa.Column('booked_seats', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available_seats', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=11), nullable=False, server_default='scheduled'),
        sa.Column('admin_approved', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('booking_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('booking_deadline', sa.DateTime(), nullable=True),
        sa.Column('disabled_reason', sa.Text(), nullable=True),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('booked_seats >= 0', name='ck_schedules_booked_non_negative'),
        sa.CheckConstraint('booked_seats <= total_seats', name='ck_schedules_booked_within_total'),
        sa.CheckConstraint('available_seats = total_seats - booked_seats', name='ck_schedules_seat_ledger'),
        sa.ForeignKeyConstraint(['route_id'], ['routes.route_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('schedule_id')
    )
    op.create_index('ix_schedules_schedule_id', 'schedules', ['schedule_id'])
    op.create_index('ix_schedules_status', 'schedules', ['status'])
    op.create_index('ix_schedules_route_date', 'schedules', ['route_id', 'schedule_date'])

    # Create bookings table
    op.create_table(
        'bookings',
        sa.Column('booking_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.String(length=64), nullable=False),
        sa.Column('schedule_id', sa.Integer(), nullable=False),
        sa.Column('route_id', sa.Integer(), nullable=False),
        sa.Column('trip_date', sa.Date(), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('boarding_stop', sa.String(length=150), nullable=True),
        sa.Column('seat_number', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('ticket_code', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='confirmed'),
        sa.Column('payment_status', sa.String(length=7), nullable=False, server_default='paid'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['student_id'], ['students.student_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['schedule_id'], ['schedules.schedule_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['route_id'], ['routes.route_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('booking_id'),
        sa.UniqueConstraint('ticket_code')
    )
    op.create_index('ix_bookings_booking_id', 'bookings', ['booking_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_student_trip_date', 'bookings', ['student_id', 'trip_date'])
    op.create_index(
        'uq_bookings_student_schedule_confirmed',
        'bookings',
        ['student_id', 'schedule_id'],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )


def downgrade() -> None:
    op.drop_index('uq_bookings_student_schedule_confirmed', table_name='bookings')
    op.drop_index('ix_bookings_student_trip_date', table_name='bookings')
    op.drop_index('ix_bookings_status', table_name='bookings')
    op.drop_index('ix_bookings_booking_id', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_schedules_route_date', table_name='schedules')
    op.drop_index('ix_schedules_status', table_name='schedules')
    op.drop_index('ix_schedules_schedule_id', table_name='schedules')
    op.drop_table('schedules')

    op.drop_index('ix_students_student_id', table_name='students')
    op.drop_table('students')

    op.drop_index('ix_routes_route_id', table_name='routes')
    op.drop_table('routes')
