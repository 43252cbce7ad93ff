"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-01 09:00:00.000000

Creates the registration dashboard tables:
- users: staff accounts that log in to the dashboard
- sessions: server-side sessions, including the saved student list view
- students: registration records
- student_notes: free-text notes and status-change log entries
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


STUDENT_STATUSES = ('active', 'inactive', 'enrolled', 'pending', 'graduated')


def upgrade() -> None:
    """Create users, sessions, students and student_notes."""
    print("🎓 Creating registration dashboard tables...")

    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # 2. sessions
    op.create_table(
        'sessions',
        sa.Column('sid', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('sid'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_expires_at', 'sessions', ['expires_at'])

    # 3. students
    op.create_table(
        'students',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('course_interested', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('citizenship_status', sa.String(length=255), nullable=True),
        sa.Column('current_situation', sa.String(length=255), nullable=True),
        sa.Column(
            'status',
            sa.Enum(*STUDENT_STATUSES, name='studentstatus', native_enum=False, length=20),
            nullable=False,
            server_default='pending',
        ),
        sa.Column('registration_date', sa.Date(), nullable=False, server_default=sa.text('CURRENT_DATE')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_students_name', 'students', ['name'])
    op.create_index('ix_students_email', 'students', ['email'], unique=True)
    op.create_index('ix_students_status', 'students', ['status'])
    op.create_index('ix_students_registration_date', 'students', ['registration_date'])

    # 4. student_notes
    op.create_table(
        'student_notes',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_system_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.BigInteger(), nullable=True),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_student_notes_student_id', 'student_notes', ['student_id'])

    print("✅ Registration dashboard tables created!")


def downgrade() -> None:
    """Drop every table created above."""
    op.drop_index('ix_student_notes_student_id', table_name='student_notes')
    op.drop_table('student_notes')

    op.drop_index('ix_students_registration_date', table_name='students')
    op.drop_index('ix_students_status', table_name='students')
    op.drop_index('ix_students_email', table_name='students')
    op.drop_index('ix_students_name', table_name='students')
    op.drop_table('students')

    op.drop_index('ix_sessions_expires_at', table_name='sessions')
    op.drop_index('ix_sessions_user_id', table_name='sessions')
    op.drop_table('sessions')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
