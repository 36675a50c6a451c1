"""Create users, listings, wishlist and enquiry tables

Revision ID: 3f9c1a7e2b4d
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7e2b4d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('about', sa.Text(), nullable=True),
        sa.Column('photo', sa.String(500), nullable=True),
        sa.Column('logo', sa.String(500), nullable=True),
        sa.Column('reset_password_token', sa.String(64), nullable=True),
        sa.Column('reset_password_expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Listings
    op.create_table(
        'listings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(300), nullable=False),
        sa.Column('posted_by', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('virtual_tour', sa.JSON(), nullable=True),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('geocode_result', sa.JSON(), nullable=True),
        sa.Column('landmarks', sa.JSON(), nullable=False),
        sa.Column('nearby_places', sa.JSON(), nullable=False),
        sa.Column('property_type', sa.String(50), nullable=False),
        sa.Column('action', sa.String(10), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='In market'),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Integer(), nullable=True),
        sa.Column('total_floors', sa.Integer(), nullable=True),
        sa.Column('floor_number', sa.Integer(), nullable=True),
        sa.Column('carpark', sa.Integer(), nullable=True),
        sa.Column('super_built_up_area', sa.Float(), nullable=True),
        sa.Column('carpet_area', sa.Float(), nullable=True),
        sa.Column('land_size', sa.Float(), nullable=True),
        sa.Column('land_size_unit', sa.String(30), nullable=True),
        sa.Column('facing', sa.String(20), nullable=True),
        sa.Column('amenities', sa.JSON(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('furnishing_status', sa.String(30), nullable=True),
        sa.Column('possession_status', sa.String(30), nullable=True),
        sa.Column('construction_age', sa.String(30), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('maintenance_charges', sa.Float(), nullable=True),
        sa.Column('maintenance_frequency', sa.String(20), nullable=True),
        sa.Column('price_history', sa.JSON(), nullable=False),
        sa.Column('ownership', sa.String(40), nullable=True),
        sa.Column('approvals', sa.JSON(), nullable=False),
        sa.Column('rera_number', sa.String(100), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('inspection_time', sa.String(255), nullable=True),
        sa.Column('views_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('views_unique', sa.JSON(), nullable=False),
        sa.Column('last_viewed_at', sa.DateTime(), nullable=True),
        sa.Column('contact_requests', sa.JSON(), nullable=False),
        sa.Column('shortlists', sa.JSON(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_by', sa.Uuid(), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('featured_from', sa.DateTime(), nullable=True),
        sa.Column('featured_until', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['posted_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_listings_slug', 'listings', ['slug'], unique=True)
    op.create_index('ix_listings_posted_by', 'listings', ['posted_by'])
    op.create_index('ix_listings_address', 'listings', ['address'])
    op.create_index('ix_listings_property_type', 'listings', ['property_type'])
    op.create_index('ix_listings_action', 'listings', ['action'])
    op.create_index('ix_listings_price', 'listings', ['price'])
    op.create_index('ix_listings_published', 'listings', ['published'])
    op.create_index('ix_listings_created_at', 'listings', ['created_at'])
    op.create_index('ix_listings_lat_lon', 'listings', ['latitude', 'longitude'])
    op.create_index('ix_listings_action_type', 'listings', ['action', 'property_type'])

    # Reference sets
    for table in ('wishlist_entries', 'listing_enquiries'):
        op.create_table(
            table,
            sa.Column('user_id', sa.Uuid(), nullable=False),
            sa.Column('listing_id', sa.Uuid(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('user_id', 'listing_id'),
        )


def downgrade() -> None:
    op.drop_table('listing_enquiries')
    op.drop_table('wishlist_entries')
    op.drop_table('listings')
    op.drop_table('users')
