"""Application-wide constants."""

PROJECT_NAME = "Back Office Server"
API_V1_STR = "/api/v1"
VERSION = "1.0.0"
# Alembic head revision
SCHEMA_VERSION = "20260101_000000"
