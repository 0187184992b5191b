"""initial schema: identity, org structure, objects, documents, audit

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEARCH_LANGUAGE = "russian"

SEARCH_VECTOR_FUNCTION = f"""
CREATE OR REPLACE FUNCTION documents_search_vector_update() RETURNS trigger AS $$
BEGIN
    NEW.search_vector :=
        setweight(to_tsvector('{SEARCH_LANGUAGE}', coalesce(NEW.name, '')), 'A') ||
        setweight(to_tsvector('{SEARCH_LANGUAGE}', coalesce(NEW.file_name, '')), 'B') ||
        setweight(to_tsvector('{SEARCH_LANGUAGE}', coalesce(array_to_string(NEW.tags, ' '), '')), 'B') ||
        setweight(to_tsvector('{SEARCH_LANGUAGE}', coalesce(NEW.text_content, '')), 'C');
    RETURN NEW;
END
$$ LANGUAGE plpgsql;
"""

SEARCH_VECTOR_TRIGGER = """
CREATE TRIGGER documents_search_vector_trigger
BEFORE INSERT OR UPDATE OF name, file_name, tags, text_content ON documents
FOR EACH ROW EXECUTE FUNCTION documents_search_vector_update();
"""


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _id(name: str) -> sa.Column:
    return sa.Column(name, sa.String(36), primary_key=True)


def upgrade() -> None:
    is_postgres = op.get_bind().dialect.name == "postgresql"

    if is_postgres:
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    # ============================================
    # Identity and roles
    # ============================================
    op.create_table(
        "users",
        _id("user_id"),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(120), nullable=True, unique=True),
        sa.Column("status", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "roles",
        _id("role_id"),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("is_system", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "permissions",
        _id("permission_id"),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("module", "action", name="uq_permissions_module_action"),
    )
    op.create_table(
        "role_permissions",
        _id("role_permission_id"),
        sa.Column(
            "role_id",
            sa.String(36),
            sa.ForeignKey("roles.role_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "permission_id",
            sa.String(36),
            sa.ForeignKey("permissions.permission_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_pair"),
    )
    op.create_table(
        "user_roles",
        _id("user_role_id"),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "role_id",
            sa.String(36),
            sa.ForeignKey("roles.role_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_pair"),
    )

    # ============================================
    # Organizational structure
    # ============================================
    op.create_table(
        "umg",
        _id("umg_id"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        "services",
        _id("service_id"),
        sa.Column(
            "umg_id", sa.String(36), sa.ForeignKey("umg.umg_id"), nullable=False, index=True
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("umg_id", "code", name="uq_services_umg_code"),
    )
    op.create_table(
        "departments",
        _id("department_id"),
        sa.Column(
            "service_id",
            sa.String(36),
            sa.ForeignKey("services.service_id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "parent_id",
            sa.String(36),
            sa.ForeignKey("departments.department_id"),
            nullable=True,
            index=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("level", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "user_service_access",
        _id("access_id"),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "service_id",
            sa.String(36),
            sa.ForeignKey("services.service_id"),
            nullable=False,
            index=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "service_id", name="uq_user_service_access_pair"),
    )
    op.create_table(
        "user_umg_access",
        _id("access_id"),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "umg_id", sa.String(36), sa.ForeignKey("umg.umg_id"), nullable=False, index=True
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "umg_id", name="uq_user_umg_access_pair"),
    )

    # ============================================
    # Objects and documents
    # ============================================
    op.create_table(
        "objects",
        _id("object_id"),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column(
            "umg_id", sa.String(36), sa.ForeignKey("umg.umg_id"), nullable=False, index=True
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("qr_code", sa.String(64), nullable=False, unique=True),
        sa.Column("location", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "object_services",
        _id("object_service_id"),
        sa.Column(
            "object_id",
            sa.String(36),
            sa.ForeignKey("objects.object_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "service_id",
            sa.String(36),
            sa.ForeignKey("services.service_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("object_id", "service_id", name="uq_object_services_pair"),
    )
    op.create_table(
        "document_categories",
        _id("category_id"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )

    tag_type = postgresql.ARRAY(sa.Text()) if is_postgres else sa.JSON()
    vector_type = postgresql.TSVECTOR() if is_postgres else sa.Text()
    op.create_table(
        "documents",
        _id("document_id"),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(150), nullable=False),
        sa.Column(
            "category_id",
            sa.String(36),
            sa.ForeignKey("document_categories.category_id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "object_id",
            sa.String(36),
            sa.ForeignKey("objects.object_id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "umg_id", sa.String(36), sa.ForeignKey("umg.umg_id"), nullable=False, index=True
        ),
        sa.Column("tags", tag_type, nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "uploaded_by",
            sa.String(36),
            sa.ForeignKey("users.user_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("search_vector", vector_type, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_documents_created_at", "documents", ["created_at"])
    op.create_table(
        "document_services",
        _id("document_service_id"),
        sa.Column(
            "document_id",
            sa.String(36),
            sa.ForeignKey("documents.document_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "service_id",
            sa.String(36),
            sa.ForeignKey("services.service_id"),
            nullable=False,
        ),
        sa.Column("can_view", sa.Boolean(), nullable=False),
        sa.Column("can_edit", sa.Boolean(), nullable=False),
        sa.Column("can_delete", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("document_id", "service_id", name="uq_document_services_pair"),
    )
    op.create_index(
        "ix_document_services_service_view",
        "document_services",
        ["service_id", "can_view"],
    )

    # ============================================
    # Audit trail
    # ============================================
    op.create_table(
        "audit_logs",
        _id("audit_id"),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.user_id"),
            nullable=True,
            index=True,
        ),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("resource", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_resource", "audit_logs", ["resource", "resource_id"])

    # ============================================
    # Full-text search (PostgreSQL only)
    # ============================================
    if is_postgres:
        op.execute(SEARCH_VECTOR_FUNCTION)
        op.execute(SEARCH_VECTOR_TRIGGER)
        op.create_index(
            "ix_documents_search_vector",
            "documents",
            ["search_vector"],
            postgresql_using="gin",
        )
        op.create_index(
            "ix_documents_name_trgm",
            "documents",
            ["name"],
            postgresql_using="gin",
            postgresql_ops={"name": "gin_trgm_ops"},
        )
        op.create_index(
            "ix_documents_tags", "documents", ["tags"], postgresql_using="gin"
        )


def downgrade() -> None:
    is_postgres = op.get_bind().dialect.name == "postgresql"

    if is_postgres:
        op.execute("DROP TRIGGER IF EXISTS documents_search_vector_trigger ON documents")
        op.execute("DROP FUNCTION IF EXISTS documents_search_vector_update()")

    for table in (
        "audit_logs",
        "document_services",
        "documents",
        "document_categories",
        "object_services",
        "objects",
        "user_umg_access",
        "user_service_access",
        "departments",
        "services",
        "umg",
        "user_roles",
        "role_permissions",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
