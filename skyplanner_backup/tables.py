"""Static table configuration for backup and restore.

These sets are configuration data; the pipeline only reads them.
"""

# Infrastructure tables never included in a backup
EXCLUDED_TABLES = frozenset({
    "schema_migrations",
    "spatial_ref_sys",
})

# A backup missing any of these is flagged for operator attention
CRITICAL_TABLES = (
    "organizations",
    "kunder",
    "klient",
    "avtaler",
    "ruter",
)

# Field redaction per table. Password hashes are kept so that a restore is
# complete; only short-lived secrets are removed.
SANITIZE_RULES = {
    "totp_pending_sessions": ["totp_secret"],
}

# Fallback table list used when the catalog RPC is unavailable
KNOWN_TABLES = (
    "organizations",
    "klient",
    "bruker",
    "kunder",
    "ruter",
    "rute_kunde_visits",
    "avtaler",
    "kontaktlogg",
    "kontaktpersoner",
    "industry_templates",
    "template_service_types",
    "template_subtypes",
    "template_equipment",
    "template_intervals",
    "organization_service_types",
    "customer_services",
    "feature_definitions",
    "organization_features",
    "import_batches",
    "import_staging_rows",
    "import_validation_errors",
    "import_column_history",
    "import_mapping_templates",
    "import_audit_log",
    "organization_integrations",
    "integration_sync_log",
    "failed_sync_items",
    "ekk_reports",
    "outlook_sync_log",
    "api_keys",
    "api_key_usage_log",
    "webhook_endpoints",
    "webhook_deliveries",
    "tags",
    "kunde_tags",
    "email_varsler",
    "email_innstillinger",
    "customer_email_templates",
    "customer_emails_sent",
    "security_audit_log",
    "totp_audit_log",
    "totp_pending_sessions",
    "active_sessions",
    "account_deletion_requests",
    "chat_conversations",
    "chat_messages",
    "chat_participants",
    "chat_read_status",
    "patch_notes",
)

# Tables whose rows carry the tenant column and can be restored per organization
TENANT_TABLES = frozenset({
    "kunder",
    "ruter",
    "avtaler",
    "kontaktlogg",
    "kontaktpersoner",
    "rute_kunder",
    "rute_kunde_visits",
    "organization_features",
    "organization_service_types",
    "api_keys",
    "api_key_usage_log",
    "webhook_endpoints",
    "webhook_deliveries",
    "organization_integrations",
    "integration_sync_log",
    "failed_sync_items",
    "import_batches",
    "import_staging_rows",
    "import_mapping_templates",
    "import_column_history",
    "import_audit_log",
    "customer_services",
    "tags",
    "kunde_tags",
    "email_varsler",
    "email_innstillinger",
    "customer_email_templates",
    "customer_emails_sent",
    "chat_conversations",
    "account_deletion_requests",
    "kontroll_historikk",
    "ekk_reports",
    "outlook_sync_log",
})

# Global and system tables, never touched by a tenant restore
GLOBAL_TABLES = frozenset({
    "organizations",
    "klient",
    "brukere",
    "active_sessions",
    "refresh_tokens",
    "auth_tokens",
    "email_tokens",
    "password_reset_tokens",
    "totp_pending_sessions",
    "login_logg",
    "security_audit_log",
    "totp_audit_log",
    "industry_templates",
    "template_service_types",
    "template_subtypes",
    "template_equipment",
    "template_intervals",
    "feature_definitions",
    "patch_notes",
    "import_validation_errors",
})

# Restore order: referenced tables first. Unlisted tables follow alphabetically.
RESTORE_PRIORITY = (
    "kunder",
    "ruter",
    "tags",
    "organization_service_types",
    "organization_features",
    "customer_services",
    "avtaler",
    "kontaktpersoner",
    "kontaktlogg",
    "kontroll_historikk",
    "rute_kunder",
    "rute_kunde_visits",
    "kunde_tags",
    "email_innstillinger",
    "email_varsler",
    "customer_email_templates",
    "customer_emails_sent",
    "api_keys",
    "api_key_usage_log",
    "webhook_endpoints",
    "webhook_deliveries",
    "organization_integrations",
    "integration_sync_log",
    "failed_sync_items",
    "import_batches",
    "import_staging_rows",
)

TENANT_LOOKUP_TABLE = "organizations"
