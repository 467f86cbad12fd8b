"""initial panel schema"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "panel_20261001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    """Create the panelist, survey, reward and vendor marketplace tables."""

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="panelist"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fraud_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_otp_hash", sa.String(length=64), nullable=True),
        sa.Column("email_otp_expires_at", sa.DateTime(), nullable=True),
        sa.Column("reset_otp_hash", sa.String(length=64), nullable=True),
        sa.Column("reset_otp_expires_at", sa.DateTime(), nullable=True),
        sa.Column("password_change_otp_hash", sa.String(length=64), nullable=True),
        sa.Column("password_change_otp_expires_at", sa.DateTime(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(), nullable=True),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("country_code", sa.String(length=8), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("language", sa.String(length=16), nullable=True),
        sa.Column("occupation", sa.String(length=255), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("referral_code", sa.String(length=64), nullable=True),
        sa.Column("gender", sa.String(length=32), nullable=True),
        sa.Column("education", sa.String(length=64), nullable=True),
        sa.Column("income", sa.String(length=64), nullable=True),
        sa.Column("marital_status", sa.String(length=32), nullable=True),
        sa.Column("household_size", sa.Integer(), nullable=True),
        sa.Column("children", sa.Integer(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("employment_status", sa.String(length=64), nullable=True),
        sa.Column("annual_household_income", sa.String(length=64), nullable=True),
        sa.Column("languages_spoken", sa.JSON(), nullable=True),
        sa.Column("religion", sa.String(length=64), nullable=True),
        sa.Column("ethnicity", sa.String(length=64), nullable=True),
        sa.Column("device_ownership", sa.JSON(), nullable=True),
        sa.Column("internet_access", sa.String(length=64), nullable=True),
        sa.Column("social_media_platforms", sa.JSON(), nullable=True),
        sa.Column("preferred_survey_length", sa.String(length=32), nullable=True),
        sa.Column("topics_of_interest", sa.JSON(), nullable=True),
        sa.Column("preferred_device_for_surveys", sa.String(length=32), nullable=True),
        sa.Column("receive_notifications", sa.Boolean(), nullable=True),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("push_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("survey_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("reward_updates", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("profile_visibility", sa.String(length=16), nullable=False, server_default="private"),
        sa.Column("data_sharing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("analytics_opt_in", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("marketing_emails", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("third_party_sharing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("data_retention", sa.String(length=32), nullable=False, server_default="account_deletion"),
        sa.Column("gdpr_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cookie_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("consent_updated_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_jti", sa.String(length=64), nullable=False, unique=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("issued_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])

    op.create_table(
        "user_activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_activities_user_id", "user_activities", ["user_id"])

    op.create_table(
        "support_tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="General"),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="Medium"),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        *_timestamps(),
    )
    op.create_index("ix_support_tickets_user_id", "support_tickets", ["user_id"])

    op.create_table(
        "surveys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("estimated_duration", sa.Integer(), nullable=False),
        sa.Column("reward", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("age_min", sa.Integer(), nullable=True),
        sa.Column("age_max", sa.Integer(), nullable=True),
        sa.Column("target_gender", sa.String(length=16), nullable=True),
        sa.Column("target_locations", sa.JSON(), nullable=True),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("total_responses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_responses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_surveys_status", "surveys", ["status"])
    op.create_index("ix_surveys_created_by_id", "surveys", ["created_by_id"])

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("survey_id", sa.Integer(), sa.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False),
        sa.Column("respondent_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="in_progress"),
        sa.Column("open_slot", sa.SmallInteger(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("time_spent", sa.Integer(), nullable=True),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_qualified", sa.Boolean(), nullable=True),
        sa.Column("disqualification_reason", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "survey_id", "respondent_id", "open_slot", name="uq_survey_responses_one_in_progress"
        ),
    )
    op.create_index("ix_survey_responses_survey_id", "survey_responses", ["survey_id"])
    op.create_index("ix_survey_responses_respondent_id", "survey_responses", ["respondent_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("reward_type", sa.String(length=32), nullable=False, server_default="gift_card"),
        sa.Column("value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "reward_redemptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_id", sa.Integer(), sa.ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        *_timestamps(),
    )
    op.create_index("ix_reward_redemptions_user_id", "reward_redemptions", ["user_id"])
    op.create_index("ix_reward_redemptions_reward_id", "reward_redemptions", ["reward_id"])

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("site_name", sa.String(length=100), nullable=False),
        sa.Column("site_description", sa.String(length=500), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=False),
        sa.Column("support_email", sa.String(length=255), nullable=False),
        sa.Column("max_file_size", sa.Integer(), nullable=False),
        sa.Column("allowed_file_types", sa.JSON(), nullable=False),
        sa.Column("default_reward_points", sa.Integer(), nullable=False),
        sa.Column("min_reward_points", sa.Integer(), nullable=False),
        sa.Column("max_reward_points", sa.Integer(), nullable=False),
        sa.Column("max_surveys_per_day", sa.Integer(), nullable=False),
        sa.Column("email_notifications", sa.Boolean(), nullable=False),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False),
        sa.Column("maintenance_mode", sa.Boolean(), nullable=False),
        sa.Column("registration_enabled", sa.Boolean(), nullable=False),
        sa.Column("email_verification_required", sa.Boolean(), nullable=False),
        sa.Column("two_factor_auth", sa.Boolean(), nullable=False),
        sa.Column("session_timeout", sa.Integer(), nullable=False),
        sa.Column("rate_limit_window", sa.Integer(), nullable=False),
        sa.Column("rate_limit_max", sa.Integer(), nullable=False),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending_verification"),
        sa.Column("otp_hash", sa.String(length=64), nullable=True),
        sa.Column("otp_expires_at", sa.DateTime(), nullable=True),
        sa.Column("profile", sa.JSON(), nullable=False),
        sa.Column("redirect_status", sa.String(length=64), nullable=True),
        sa.Column("external_link", sa.String(length=512), nullable=True),
        sa.Column("years_in_business", sa.Integer(), nullable=True),
        sa.Column("number_of_employees", sa.Integer(), nullable=True),
        sa.Column("annual_revenue", sa.String(length=64), nullable=True),
        sa.Column("panel_book", sa.Text(), nullable=True),
        sa.Column("panel_registration_details", sa.Text(), nullable=True),
        sa.Column("business_information", sa.Text(), nullable=True),
        sa.Column("other_documents", sa.Text(), nullable=True),
        sa.Column("services_offered", sa.Text(), nullable=True),
        sa.Column("previous_projects", sa.Text(), nullable=True),
        sa.Column("why_partner_with_us", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="open"),
        sa.Column("redirect_status", sa.String(length=64), nullable=True),
        sa.Column("external_link", sa.String(length=512), nullable=True),
        sa.Column("posted_by_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_to_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_posted_by_id", "projects", ["posted_by_id"])
    op.create_index("ix_projects_assigned_to_id", "projects", ["assigned_to_id"])

    op.create_table(
        "project_briefs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("target_audience", sa.String(length=255), nullable=True),
        sa.Column("sample_size", sa.Integer(), nullable=True),
        sa.Column("cpi", sa.Float(), nullable=True),
        sa.Column("loi", sa.Integer(), nullable=True),
        sa.Column("ir", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("timeline", sa.JSON(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("deliverables", sa.JSON(), nullable=True),
        sa.Column("survey_type", sa.String(length=64), nullable=True),
        sa.Column("quota_requirements", sa.String(length=255), nullable=True),
        sa.Column("quality_checks", sa.Boolean(), nullable=True),
        sa.Column("data_format", sa.String(length=64), nullable=True),
        sa.Column("reporting_requirements", sa.String(length=255), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
    )

    op.create_table(
        "bids",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "vendor_id", name="uq_bids_project_vendor"),
    )
    op.create_index("ix_bids_project_id", "bids", ["project_id"])
    op.create_index("ix_bids_vendor_id", "bids", ["vendor_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_project_id", "messages", ["project_id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])


def downgrade():
    for table in (
        "messages",
        "bids",
        "project_briefs",
        "projects",
        "vendors",
        "system_settings",
        "reward_redemptions",
        "rewards",
        "survey_responses",
        "surveys",
        "support_tickets",
        "user_activities",
        "user_sessions",
        "users",
    ):
        op.drop_table(table)
