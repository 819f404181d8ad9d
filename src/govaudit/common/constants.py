"""Centralized constants for the govaudit pipeline."""


# ===== AUDIT & BATCHING =====
class AuditConstants:
    DEFAULT_BATCH_SIZE = 10
    DEFAULT_BATCH_INTERVAL_MS = 100
    DISPATCH_WORKERS = 2
    SHUTDOWN_TIMEOUT_SECONDS = 5.0


# ===== MASKING =====
class MaskingConstants:
    REDACTION_MARKER = "***REDACTED***"
    PARTIAL_MASK_MAX_STARS = 8
    BASELINE_CONFIG_FILENAME = "sensitive_fields.json"
    CONFIG_ENV_VAR = "GOVAUDIT_SENSITIVE_FIELDS_CONFIG"


# ===== LOG ENTRIES =====
class LogConstants:
    UNKNOWN_ENTITY = "unknown"
    EVENT_LOG = "log"
    EVENT_LOG_BATCH = "log:batch"
    DIAGNOSTICS_LOGGER = "govaudit.diagnostics"


# ===== TRANSPORT =====
class TransportConstants:
    LOG_ENDPOINT = "/api/v1/logs"
    BATCH_ENDPOINT = "/api/v1/logs/batch"
    DEFAULT_TIMEOUT_SECONDS = 5.0
    CIRCUIT_MAX_FAILURES = 3
    CIRCUIT_OPEN_SECONDS = 60.0
    CLIENT_ID_HEADER = "x-client-id"
    CLIENT_SECRET_HEADER = "x-client-secret"
