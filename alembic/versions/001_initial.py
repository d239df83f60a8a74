"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("hashed_password", sa.String(256), nullable=False),
        sa.Column("is_sudo", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admins_username"), "admins", ["username"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("uuid", sa.String(36), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("data_limit", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("data_used", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_name"), "users", ["name"], unique=True)
    op.create_index(op.f("ix_users_uuid"), "users", ["uuid"], unique=True)
    op.create_index(op.f("ix_users_deleted_at"), "users", ["deleted_at"], unique=False)

    op.create_table(
        "nodes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("api_port", sa.Integer(), nullable=False, server_default="9090"),
        sa.Column("api_token", sa.String(255), nullable=False, server_default=""),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_nodes_deleted_at"), "nodes", ["deleted_at"], unique=False)

    op.create_table(
        "inbounds",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("node_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("protocol", sa.String(50), nullable=False),
        sa.Column("listen_port", sa.Integer(), nullable=False, server_default="443"),
        sa.Column("sni", sa.String(255), nullable=False, server_default=""),
        sa.Column("fallback_addr", sa.String(255), nullable=False, server_default="127.0.0.1"),
        sa.Column("fallback_port", sa.Integer(), nullable=False, server_default="8443"),
        sa.Column("private_key", sa.String(255), nullable=False, server_default=""),
        sa.Column("public_key", sa.String(255), nullable=False, server_default=""),
        sa.Column("short_id", sa.String(16), nullable=False, server_default=""),
        sa.Column("fingerprint", sa.String(50), nullable=False, server_default="chrome"),
        sa.Column("up_mbps", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("down_mbps", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("ws_path", sa.String(255), nullable=False, server_default=""),
        sa.Column("cert_path", sa.String(255), nullable=False, server_default=""),
        sa.Column("key_path", sa.String(255), nullable=False, server_default=""),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["node_id"], ["nodes.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_inbounds_node_id"), "inbounds", ["node_id"], unique=False)
    op.create_index(op.f("ix_inbounds_deleted_at"), "inbounds", ["deleted_at"], unique=False)

    op.create_table(
        "user_inbounds",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("inbound_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["inbound_id"], ["inbounds.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "inbound_id"),
    )

    op.create_table(
        "traffic_stats",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("inbound_id", sa.Integer(), nullable=False),
        sa.Column("upload", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("download", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["inbound_id"], ["inbounds.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_traffic_stats_user_id"), "traffic_stats", ["user_id"], unique=False)
    op.create_index(op.f("ix_traffic_stats_inbound_id"), "traffic_stats", ["inbound_id"], unique=False)
    op.create_index(op.f("ix_traffic_stats_recorded_at"), "traffic_stats", ["recorded_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_traffic_stats_recorded_at"), table_name="traffic_stats")
    op.drop_index(op.f("ix_traffic_stats_inbound_id"), table_name="traffic_stats")
    op.drop_index(op.f("ix_traffic_stats_user_id"), table_name="traffic_stats")
    op.drop_table("traffic_stats")
    op.drop_table("user_inbounds")
    op.drop_index(op.f("ix_inbounds_deleted_at"), table_name="inbounds")
    op.drop_index(op.f("ix_inbounds_node_id"), table_name="inbounds")
    op.drop_table("inbounds")
    op.drop_index(op.f("ix_nodes_deleted_at"), table_name="nodes")
    op.drop_table("nodes")
    op.drop_index(op.f("ix_users_deleted_at"), table_name="users")
    op.drop_index(op.f("ix_users_uuid"), table_name="users")
    op.drop_index(op.f("ix_users_name"), table_name="users")
    op.drop_table("users")
    op.drop_index(op.f("ix_admins_username"), table_name="admins")
    op.drop_table("admins")
