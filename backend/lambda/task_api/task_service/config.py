"""config.py — Central configuration: environment variables, constants, logging.

All settings are read once at import time. Tests override them by patching the
module attributes (or the constructor arguments of the objects that use them).
"""
from __future__ import annotations

import logging
import os

__all__ = [
    "API_BASE_PATH",
    "CORS_ORIGIN",
    "DEFAULT_PAGE_SIZE",
    "DELETE_MAX_WORKERS",
    "DYNAMODB_REGION",
    "LOG_LEVEL",
    "MAX_PAGE_SIZE",
    "MAX_TASK_ID_LENGTH",
    "MAX_TITLE_LENGTH",
    "METRICS_NAMESPACE",
    "SERVICE_NAME",
    "TASKS_TABLE",
    "logger",
]

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

TASKS_TABLE = os.environ.get("TASKS_TABLE", "TasksTable")
DYNAMODB_REGION = os.environ.get("DYNAMODB_REGION", "us-west-2")
CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "*")
# Stage or custom-domain mapping prefix stripped before routing, e.g. "/prod".
API_BASE_PATH = os.environ.get("API_BASE_PATH", "").rstrip("/")

SERVICE_NAME = os.environ.get("SERVICE_NAME", "task-service")
METRICS_NAMESPACE = os.environ.get("METRICS_NAMESPACE", "TaskApp")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "50"))
MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "500"))
DELETE_MAX_WORKERS = int(os.environ.get("DELETE_MAX_WORKERS", "8"))

MAX_TITLE_LENGTH = 500
MAX_TASK_ID_LENGTH = 128

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
