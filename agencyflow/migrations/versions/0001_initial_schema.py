"""Initial schema: agencies, clients, projects, campaigns, deliverables, creators, analytics, activity log, outbox

Revision ID: 0001
Revises: None
Create Date: 2026-06-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    """Create all core tables."""

    # --- agencies (no FK deps) ---
    op.create_table(
        "agencies",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("token_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locale", sa.JSON(), nullable=False, server_default="{}"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_agencies"),
        sa.CheckConstraint("token_balance >= 0", name="ck_agencies_token_balance_non_negative"),
    )

    # --- users (no FK deps) ---
    op.create_table(
        "users",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255)),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- agency_memberships (FK -> agencies, users) ---
    op.create_table(
        "agency_memberships",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_agency_memberships"),
        sa.UniqueConstraint("agency_id", "user_id", name="uq_agency_memberships_agency_user"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_agency_memberships_agency_id_agencies", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_agency_memberships_user_id_users", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_agency_memberships_agency_id", "agency_memberships", ["agency_id"])
    op.create_index("ix_agency_memberships_user_id", "agency_memberships", ["user_id"])

    # --- agency_email_configs (FK -> agencies) ---
    op.create_table(
        "agency_email_configs",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("smtp_host", sa.String(255), nullable=False),
        sa.Column("smtp_port", sa.Integer(), nullable=False, server_default="587"),
        sa.Column("smtp_secure", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("smtp_username", sa.String(255), nullable=True),
        sa.Column("smtp_password", sa.String(500), nullable=True),
        sa.Column("from_email", sa.String(255), nullable=False),
        sa.Column("from_name", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_agency_email_configs"),
        sa.UniqueConstraint("agency_id", name="uq_agency_email_configs_agency_id"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_agency_email_configs_agency_id_agencies", ondelete="CASCADE",
        ),
    )

    # --- clients (FK -> agencies, users) ---
    op.create_table(
        "clients",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("account_manager_id", _uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_clients"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_clients_agency_id_agencies", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["account_manager_id"], ["users.id"],
            name="fk_clients_account_manager_id_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_clients_agency_id", "clients", ["agency_id"])
    op.create_index("ix_clients_account_manager_id", "clients", ["account_manager_id"])

    # --- contacts (FK -> clients) ---
    op.create_table(
        "contacts",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("client_id", _uuid(), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_client_approver", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_contacts"),
        sa.ForeignKeyConstraint(
            ["client_id"], ["clients.id"],
            name="fk_contacts_client_id_clients", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_contacts_client_id", "contacts", ["client_id"])

    # --- projects (FK -> clients, users) ---
    op.create_table(
        "projects",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("client_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.ForeignKeyConstraint(
            ["client_id"], ["clients.id"],
            name="fk_projects_client_id_clients", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_projects_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_projects_client_id", "projects", ["client_id"])

    # --- project_approvers / project_users (FK -> projects, users) ---
    for table, unique_name in (
        ("project_approvers", "uq_project_approvers_project_user"),
        ("project_users", "uq_project_users_project_user"),
    ):
        op.create_table(
            table,
            sa.Column("id", _uuid(), nullable=False),
            sa.Column("project_id", _uuid(), nullable=False),
            sa.Column("user_id", _uuid(), nullable=False),
            sa.Column("created_by", _uuid(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
            sa.PrimaryKeyConstraint("id", name=f"pk_{table}"),
            sa.UniqueConstraint("project_id", "user_id", name=unique_name),
            sa.ForeignKeyConstraint(
                ["project_id"], ["projects.id"],
                name=f"fk_{table}_project_id_projects", ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["user_id"], ["users.id"],
                name=f"fk_{table}_user_id_users", ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["created_by"], ["users.id"],
                name=f"fk_{table}_created_by_users", ondelete="SET NULL",
            ),
        )
        op.create_index(f"ix_{table}_project_id", table, ["project_id"])
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    # --- campaigns (FK -> projects, users) ---
    op.create_table(
        "campaigns",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("project_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("campaign_type", sa.String(50), nullable=False, server_default="influencer"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="draft"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("brief", sa.Text(), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_campaigns"),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"],
            name="fk_campaigns_project_id_projects", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_campaigns_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_campaigns_project_id", "campaigns", ["project_id"])
    op.create_index("ix_campaigns_status", "campaigns", ["status"])

    # --- campaign_users (FK -> campaigns, users) ---
    op.create_table(
        "campaign_users",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("campaign_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_users"),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_campaign_users_campaign_user"),
        sa.ForeignKeyConstraint(
            ["campaign_id"], ["campaigns.id"],
            name="fk_campaign_users_campaign_id_campaigns", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_campaign_users_user_id_users", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_campaign_users_campaign_id", "campaign_users", ["campaign_id"])
    op.create_index("ix_campaign_users_user_id", "campaign_users", ["user_id"])

    # --- campaign_attachments (FK -> campaigns, users) ---
    op.create_table(
        "campaign_attachments",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("campaign_id", _uuid(), nullable=False),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(255), nullable=True),
        sa.Column("uploaded_by", _uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_attachments"),
        sa.ForeignKeyConstraint(
            ["campaign_id"], ["campaigns.id"],
            name="fk_campaign_attachments_campaign_id_campaigns", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["uploaded_by"], ["users.id"],
            name="fk_campaign_attachments_uploaded_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_campaign_attachments_campaign_id", "campaign_attachments", ["campaign_id"])

    # --- deliverables (FK -> campaigns, users; preview FK added below) ---
    op.create_table(
        "deliverables",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("campaign_id", _uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("deliverable_type", sa.String(50), nullable=False, server_default="post"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("client_preview_version_id", _uuid(), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_deliverables"),
        sa.ForeignKeyConstraint(
            ["campaign_id"], ["campaigns.id"],
            name="fk_deliverables_campaign_id_campaigns", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_deliverables_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_deliverables_campaign_id", "deliverables", ["campaign_id"])
    op.create_index("ix_deliverables_status", "deliverables", ["status"])

    # --- deliverable_versions (FK -> deliverables, users) ---
    op.create_table(
        "deliverable_versions",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("deliverable_id", _uuid(), nullable=False),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("upload_seq", sa.Integer(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(255), nullable=True),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("submitted_by", _uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_deliverable_versions"),
        sa.UniqueConstraint(
            "deliverable_id", "file_name", "version_number",
            name="uq_deliverable_versions_file_version",
        ),
        sa.UniqueConstraint("deliverable_id", "upload_seq", name="uq_deliverable_versions_upload_seq"),
        sa.ForeignKeyConstraint(
            ["deliverable_id"], ["deliverables.id"],
            name="fk_deliverable_versions_deliverable_id_deliverables", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["submitted_by"], ["users.id"],
            name="fk_deliverable_versions_submitted_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_deliverable_versions_deliverable_id", "deliverable_versions", ["deliverable_id"])

    op.create_foreign_key(
        "fk_deliverables_client_preview_version_id_deliverable_versions",
        "deliverables", "deliverable_versions",
        ["client_preview_version_id"], ["id"],
        ondelete="SET NULL",
    )

    # --- approvals (FK -> deliverables, deliverable_versions, users, contacts) ---
    op.create_table(
        "approvals",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("deliverable_id", _uuid(), nullable=False),
        sa.Column("version_id", _uuid(), nullable=False),
        sa.Column("tier", sa.String(20), nullable=False),
        sa.Column("decision", sa.String(20), nullable=False),
        sa.Column("decided_by", _uuid(), nullable=True),
        sa.Column("decided_by_contact", _uuid(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_approvals"),
        sa.CheckConstraint(
            "(decided_by IS NOT NULL) OR (decided_by_contact IS NOT NULL)",
            name="ck_approvals_has_decider",
        ),
        sa.ForeignKeyConstraint(
            ["deliverable_id"], ["deliverables.id"],
            name="fk_approvals_deliverable_id_deliverables", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["version_id"], ["deliverable_versions.id"],
            name="fk_approvals_version_id_deliverable_versions",
        ),
        sa.ForeignKeyConstraint(["decided_by"], ["users.id"], name="fk_approvals_decided_by_users"),
        sa.ForeignKeyConstraint(
            ["decided_by_contact"], ["contacts.id"],
            name="fk_approvals_decided_by_contact_contacts",
        ),
    )
    op.create_index("ix_approvals_deliverable_id", "approvals", ["deliverable_id"])
    op.create_index("ix_approvals_version_id", "approvals", ["version_id"])
    op.create_index("ix_approvals_created_at", "approvals", ["created_at"])

    # --- creators (FK -> agencies) ---
    op.create_table(
        "creators",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("instagram_handle", sa.String(255), nullable=True),
        sa.Column("youtube_handle", sa.String(255), nullable=True),
        sa.Column("tiktok_handle", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_creators"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_creators_agency_id_agencies", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_creators_agency_id", "creators", ["agency_id"])

    # --- campaign_creators (FK -> campaigns, creators) ---
    op.create_table(
        "campaign_creators",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("campaign_id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="invited"),
        sa.Column("rate_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("rate_currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_creators"),
        sa.UniqueConstraint("campaign_id", "creator_id", name="uq_campaign_creators_campaign_creator"),
        sa.ForeignKeyConstraint(
            ["campaign_id"], ["campaigns.id"],
            name="fk_campaign_creators_campaign_id_campaigns", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["creators.id"],
            name="fk_campaign_creators_creator_id_creators", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_campaign_creators_campaign_id", "campaign_creators", ["campaign_id"])
    op.create_index("ix_campaign_creators_creator_id", "campaign_creators", ["creator_id"])

    # --- payments (FK -> campaign_creators, users) ---
    op.create_table(
        "payments",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("campaign_creator_id", _uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("payment_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.ForeignKeyConstraint(
            ["campaign_creator_id"], ["campaign_creators.id"],
            name="fk_payments_campaign_creator_id_campaign_creators", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_payments_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_payments_campaign_creator_id", "payments", ["campaign_creator_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    # --- social_data_jobs (FK -> agencies, creators, users) ---
    op.create_table(
        "social_data_jobs",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("job_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("tokens_consumed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("triggered_by", _uuid(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_social_data_jobs"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_social_data_jobs_agency_id_agencies", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["creators.id"],
            name="fk_social_data_jobs_creator_id_creators", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["triggered_by"], ["users.id"],
            name="fk_social_data_jobs_triggered_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_social_data_jobs_agency_id", "social_data_jobs", ["agency_id"])
    op.create_index("ix_social_data_jobs_creator_id", "social_data_jobs", ["creator_id"])
    op.create_index("ix_social_data_jobs_status", "social_data_jobs", ["status"])

    # --- analytics_snapshots (FK -> agencies, campaign_creators, users) ---
    op.create_table(
        "analytics_snapshots",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("campaign_creator_id", _uuid(), nullable=False),
        sa.Column("analytics_type", sa.String(50), nullable=False, server_default="pre_campaign"),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("tokens_consumed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("triggered_by", _uuid(), nullable=True),
        sa.Column("fetched_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_analytics_snapshots"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_analytics_snapshots_agency_id_agencies", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["campaign_creator_id"], ["campaign_creators.id"],
            name="fk_analytics_snapshots_campaign_creator_id_campaign_creators", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["triggered_by"], ["users.id"],
            name="fk_analytics_snapshots_triggered_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_analytics_snapshots_agency_id", "analytics_snapshots", ["agency_id"])
    op.create_index("ix_analytics_snapshots_campaign_creator_id", "analytics_snapshots", ["campaign_creator_id"])
    op.create_index("ix_analytics_snapshots_status", "analytics_snapshots", ["status"])

    # --- creator_social_posts (FK -> creators, social_data_jobs) ---
    op.create_table(
        "creator_social_posts",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("creator_id", _uuid(), nullable=False),
        sa.Column("job_id", _uuid(), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("platform_post_id", sa.String(255), nullable=False),
        sa.Column("posted_at", sa.DateTime(), nullable=True),
        sa.Column("metrics", sa.JSON(), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_creator_social_posts"),
        sa.UniqueConstraint(
            "creator_id", "platform", "platform_post_id", "job_id",
            name="uq_creator_social_posts_post_job",
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["creators.id"],
            name="fk_creator_social_posts_creator_id_creators", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["job_id"], ["social_data_jobs.id"],
            name="fk_creator_social_posts_job_id_social_data_jobs", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_creator_social_posts_creator_id", "creator_social_posts", ["creator_id"])
    op.create_index("ix_creator_social_posts_job_id", "creator_social_posts", ["job_id"])

    # --- activity_logs (FK -> agencies) ---
    op.create_table(
        "activity_logs",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", _uuid(), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("actor_id", _uuid(), nullable=True),
        sa.Column("actor_type", sa.String(20), nullable=False, server_default="user"),
        sa.Column("before_state", sa.JSON(), nullable=True),
        sa.Column("after_state", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_activity_logs"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_activity_logs_agency_id_agencies",
        ),
    )
    op.create_index("ix_activity_logs_agency_id", "activity_logs", ["agency_id"])
    op.create_index("ix_activity_logs_entity_type", "activity_logs", ["entity_type"])
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])

    # --- outbox_messages (FK -> agencies) ---
    op.create_table(
        "outbox_messages",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("agency_id", _uuid(), nullable=False),
        sa.Column("topic", sa.String(50), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("idempotency_key", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_outbox_messages"),
        sa.UniqueConstraint("idempotency_key", name="uq_outbox_messages_idempotency_key"),
        sa.ForeignKeyConstraint(
            ["agency_id"], ["agencies.id"],
            name="fk_outbox_messages_agency_id_agencies", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_outbox_messages_agency_id", "outbox_messages", ["agency_id"])
    op.create_index("ix_outbox_messages_status", "outbox_messages", ["status"])
    op.create_index("ix_outbox_messages_created_at", "outbox_messages", ["created_at"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("outbox_messages")
    op.drop_table("activity_logs")
    op.drop_table("creator_social_posts")
    op.drop_table("analytics_snapshots")
    op.drop_table("social_data_jobs")
    op.drop_table("payments")
    op.drop_table("campaign_creators")
    op.drop_table("creators")
    op.drop_table("approvals")
    op.drop_constraint(
        "fk_deliverables_client_preview_version_id_deliverable_versions",
        "deliverables",
        type_="foreignkey",
    )
    op.drop_table("deliverable_versions")
    op.drop_table("deliverables")
    op.drop_table("campaign_attachments")
    op.drop_table("campaign_users")
    op.drop_table("campaigns")
    op.drop_table("project_users")
    op.drop_table("project_approvers")
    op.drop_table("projects")
    op.drop_table("contacts")
    op.drop_table("clients")
    op.drop_table("agency_email_configs")
    op.drop_table("agency_memberships")
    op.drop_table("users")
    op.drop_table("agencies")
