"""Initial Dentistar schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019001"
down_revision = None
branch_labels = None
depends_on = None

provider_type = postgresql.ENUM("dentist", "cosmetic", name="provider_type", create_type=False)
booking_status = postgresql.ENUM(
    "pending", "confirmed", "cancelled", "completed", name="booking_status", create_type=False
)
profile_role = postgresql.ENUM("user", "admin", "provider", name="profile_role", create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    provider_type.create(bind, checkfirst=True)
    booking_status.create(bind, checkfirst=True)
    profile_role.create(bind, checkfirst=True)

    op.create_table(
        "providers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("place_id", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", provider_type, nullable=False, server_default="dentist"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("website", sa.String(length=512), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "photos",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "business_status",
            sa.String(length=64),
            nullable=False,
            server_default=sa.text("'OPERATIONAL'"),
        ),
        sa.Column("opening_hours", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("last_verified", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("place_id", name="uq_providers_place_id"),
    )
    op.create_index("ix_providers_phone_number", "providers", ["phone_number"], unique=False)
    op.create_index("ix_providers_zip_code", "providers", ["zip_code"], unique=False)
    op.create_index("ix_providers_user_id", "providers", ["user_id"], unique=False)

    op.create_table(
        "people",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("biography", sa.Text(), nullable=True),
        sa.Column("dentistry_types", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("degree", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(
            ["provider_id"],
            ["providers.id"],
            name="fk_people_provider_id_providers",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("provider_id", "email", name="uq_people_provider_id"),
    )
    op.create_index("ix_people_provider_id", "people", ["provider_id"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=True),
        sa.Column("appointment_time", sa.String(length=5), nullable=True),
        sa.Column("status", booking_status, nullable=False, server_default="pending"),
        sa.ForeignKeyConstraint(
            ["provider_id"],
            ["providers.id"],
            name="fk_bookings_provider_id_providers",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_bookings_provider_id", "bookings", ["provider_id"], unique=False)
    op.create_index("ix_bookings_email", "bookings", ["email"], unique=False)
    op.create_index(
        "uq_bookings_pending_email_provider",
        "bookings",
        ["email", "provider_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("role", profile_role, nullable=False, server_default="user"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("phone", name="uq_profiles_phone"),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("city", sa.String(length=255), nullable=False),
        sa.Column("state", sa.String(length=64), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=False, server_default=sa.text("'US'")),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lng", sa.Float(), nullable=False),
        sa.Column("provider_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "last_searched",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.UniqueConstraint("city", "state", "country", name="uq_locations_city"),
    )


def downgrade() -> None:
    op.drop_table("locations")
    op.drop_index("ix_profiles_user_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("uq_bookings_pending_email_provider", table_name="bookings")
    op.drop_index("ix_bookings_email", table_name="bookings")
    op.drop_index("ix_bookings_provider_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_people_provider_id", table_name="people")
    op.drop_table("people")
    op.drop_index("ix_providers_user_id", table_name="providers")
    op.drop_index("ix_providers_zip_code", table_name="providers")
    op.drop_index("ix_providers_phone_number", table_name="providers")
    op.drop_table("providers")

    bind = op.get_bind()
    profile_role.drop(bind, checkfirst=True)
    booking_status.drop(bind, checkfirst=True)
    provider_type.drop(bind, checkfirst=True)
