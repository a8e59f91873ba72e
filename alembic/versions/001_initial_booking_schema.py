"""Initial workspace catalog and booking schema

Revision ID: 001_initial_booking_schema
Revises:
Create Date: 2025-07-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_booking_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # Create workspace_types table
    workspace_types = op.create_table('workspace_types',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_capacity', sa.Integer(), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Create amenities table
    amenities = op.create_table('amenities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Create workspaces table
    op.create_table('workspaces',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type_id', sa.Integer(), nullable=False),
        sa.Column('floor', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('base_capacity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('type_specific_attributes', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('base_capacity > 0', name='workspaces_capacity_positive'),
        sa.ForeignKeyConstraint(['type_id'], ['workspace_types.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Create workspace_amenities table
    op.create_table('workspace_amenities',
        sa.Column('workspace_id', sa.String(), nullable=False),
        sa.Column('amenity_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='workspace_amenities_quantity_positive'),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.ForeignKeyConstraint(['amenity_id'], ['amenities.id']),
        sa.PrimaryKeyConstraint('workspace_id', 'amenity_id')
    )

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('workspace_id', sa.String(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='confirmed', nullable=False),
        sa.Column('attendees', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='bookings_valid_time_range'),
        sa.CheckConstraint('attendees > 0', name='bookings_attendees_positive'),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'rejected')",
            name='bookings_status_valid'
        ),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('bookings_user_idx', 'bookings', ['user_id'])
    op.create_index('bookings_workspace_time_idx', 'bookings', ['workspace_id', 'start_time', 'end_time'])

    # Active bookings of one workspace may not overlap
    op.execute(
        "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap "
        "EXCLUDE USING gist ("
        "workspace_id WITH =, "
        "tstzrange(start_time, end_time, '[)') WITH &&"
        ") WHERE (status IN ('pending', 'confirmed'))"
    )

    # Seed default catalog data
    op.bulk_insert(workspace_types, [
        {'name': 'hot_desk', 'description': 'Flexible unassigned workstations', 'default_capacity': 1, 'requires_approval': False},
        {'name': 'meeting_room', 'description': 'Spaces for team meetings', 'default_capacity': 8, 'requires_approval': True},
    ])
    op.bulk_insert(amenities, [
        {'name': 'projector', 'description': 'Presentation projector'},
        {'name': 'whiteboard', 'description': 'Writing surface'},
    ])


def downgrade():
    op.drop_constraint('bookings_no_overlap', 'bookings')
    op.drop_index('bookings_workspace_time_idx', table_name='bookings')
    op.drop_index('bookings_user_idx', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('workspace_amenities')
    op.drop_table('workspaces')
    op.drop_table('amenities')
    op.drop_table('workspace_types')
