"""Initial schema: users, rides, bookings, messages, reviews, emergency tables.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("university", sa.String(120), nullable=False),
        sa.Column("profile_image", sa.Text, nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("rating", sa.Float, server_default="0", nullable=False),
        sa.Column("review_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("is_driver", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column("car_model", sa.String(120), nullable=True),
        sa.Column("license_plate", sa.String(32), nullable=True),
        sa.Column("is_admin", sa.Boolean, server_default=sa.false(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_users_university", "users", ["university"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("seat_capacity", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("recurring", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column("recurring_days", sa.String(64), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "cancelled", name="ridestatus"),
            server_default="active",
            nullable=False,
        ),
        _created_at(),
    )
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_departure", "rides", ["departure_time"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "passenger_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "confirmed", "cancelled", "completed",
                name="bookingstatus",
            ),
            server_default="pending",
            nullable=False,
        ),
        _created_at(),
    )
    op.create_index("idx_bookings_ride_status", "bookings", ["ride_id", "status"])
    op.create_index("idx_bookings_passenger", "bookings", ["passenger_id"])

    # ── messages ──────────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("sender_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "receiver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, server_default=sa.false(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_messages_sender", "messages", ["sender_id"])
    op.create_index("idx_messages_receiver", "messages", ["receiver_id"])

    # ── reviews ───────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "reviewer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "reviewee_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("idx_reviews_reviewee", "reviews", ["reviewee_id"])

    # ── emergency_contacts ────────────────────────────────────────────
    op.create_table(
        "emergency_contacts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("relationship", sa.String(64), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        _created_at(),
    )
    op.create_index("idx_emergency_contacts_user", "emergency_contacts", ["user_id"])

    # ── emergency_alerts ──────────────────────────────────────────────
    op.create_table(
        "emergency_alerts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "type",
            sa.Enum("medical", "safety", "accident", "other", name="alerttype"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "resolved", name="alertstatus"),
            server_default="active",
            nullable=False,
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("idx_emergency_alerts_user", "emergency_alerts", ["user_id"])
    op.create_index("idx_emergency_alerts_status", "emergency_alerts", ["status"])


def downgrade() -> None:
    op.drop_table("emergency_alerts")
    op.drop_table("emergency_contacts")
    op.drop_table("reviews")
    op.drop_table("messages")
    op.drop_table("bookings")
    op.drop_table("rides")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS alertstatus")
    op.execute("DROP TYPE IF EXISTS alerttype")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS ridestatus")
