"""initial campus tables

Revision ID: 0001
Revises: 
Create Date: 2025-09-05

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False, server_default='student'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('classes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('professor', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('color', sa.String(16), nullable=False, server_default='#7C4DFF'),
    )

    op.create_table('schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
    )
    op.create_index('ix_schedules_day_start', 'schedules', ['day_of_week', 'start_time'])

    op.create_table('attendances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'class_id', 'schedule_id', 'date', name='uq_attendance_natural_key'),
    )
    op.create_index('ix_attendances_user_id', 'attendances', ['user_id'])

    op.create_table('resources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_size', sa.String(32), nullable=True),
        sa.Column('added_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_resources_category', 'resources', ['category'])

    op.create_table('events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_events_date', 'events', ['date'])

    op.create_table('event_tags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag', sa.String(64), nullable=False),
    )
    op.create_index('ix_event_tags_event_id', 'event_tags', ['event_id'])

    op.create_table('event_registrations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_registration_natural_key'),
    )

    op.create_table('counselors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('specialty', sa.String(255), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
    )

    op.create_table('counseling_appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('counselor_id', sa.Integer(), sa.ForeignKey('counselors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='scheduled'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_counseling_appointments_user_id', 'counseling_appointments', ['user_id'])

    op.create_table('chat_messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_user_message', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_chat_messages_user_created', 'chat_messages', ['user_id', 'created_at'])

def downgrade():
    op.drop_index('ix_chat_messages_user_created', table_name='chat_messages')
    op.drop_table('chat_messages')
    op.drop_index('ix_counseling_appointments_user_id', table_name='counseling_appointments')
    op.drop_table('counseling_appointments')
    op.drop_table('counselors')
    op.drop_table('event_registrations')
    op.drop_index('ix_event_tags_event_id', table_name='event_tags')
    op.drop_table('event_tags')
    op.drop_index('ix_events_date', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_resources_category', table_name='resources')
    op.drop_table('resources')
    op.drop_index('ix_attendances_user_id', table_name='attendances')
    op.drop_table('attendances')
    op.drop_index('ix_schedules_day_start', table_name='schedules')
    op.drop_table('schedules')
    op.drop_table('classes')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
