"""create file_meta and file_tag

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "file_meta",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("path", sa.String(1024), nullable=False, unique=True),
        sa.Column("name", sa.String(1024), nullable=False),
        sa.Column("size", sa.BigInteger, nullable=False),
        sa.Column("order_no", sa.String(64), nullable=False),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("update_time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_file_meta_order_no", "file_meta", ["order_no"])

    op.create_table(
        "file_tag",
        sa.Column("file_id", sa.String(36), sa.ForeignKey("file_meta.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer, primary_key=True),
        sa.Column("tag", sa.String(255), nullable=False),
    )
    op.create_index("ix_file_tag_tag", "file_tag", ["tag"])


def downgrade():
    op.drop_index("ix_file_tag_tag", table_name="file_tag")
    op.drop_table("file_tag")
    op.drop_index("ix_file_meta_order_no", table_name="file_meta")
    op.drop_table("file_meta")
