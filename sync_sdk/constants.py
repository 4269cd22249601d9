import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Application Constants
APPLICATION_NAME = os.getenv("SYNC_APPLICATION_NAME", "sync-sdk")

# Rate Limiting Constants
# Requests allowed per window before the tracker latches a cooldown
RATE_LIMIT_QUOTA = int(os.getenv("SYNC_RATE_LIMIT_QUOTA", "100"))
RATE_LIMIT_WINDOW_MS = int(os.getenv("SYNC_RATE_LIMIT_WINDOW_MS", "120000"))
# Quota kept in reserve while draining dependent records
RATE_LIMIT_SAFETY_MARGIN = int(os.getenv("SYNC_RATE_LIMIT_SAFETY_MARGIN", "5"))

# Extraction Constants
PAGE_SIZE = int(os.getenv("SYNC_PAGE_SIZE", "100"))
INVOCATION_TIMEOUT = timedelta(
    seconds=int(os.getenv("SYNC_INVOCATION_TIMEOUT", 12 * 60))  # 12 minutes
)
# Headroom subtracted from the activity timeout so state is saved before it fires
INVOCATION_DEADLINE_BUFFER = timedelta(
    seconds=int(os.getenv("SYNC_INVOCATION_DEADLINE_BUFFER", "30"))
)
MAX_INVOCATIONS_PER_PASS = int(os.getenv("SYNC_MAX_INVOCATIONS_PER_PASS", "500"))

# Storage Constants
TEMPORARY_PATH = os.getenv("SYNC_TEMPORARY_PATH", "./local/tmp/")
STATE_STORE_PATH_TEMPLATE = os.getenv(
    "SYNC_STATE_STORE_PATH_TEMPLATE",
    "persistent-artifacts/apps/{application_name}/{state_type}/{id}/state.json",
)
OUTPUT_PATH_TEMPLATE = os.getenv(
    "SYNC_OUTPUT_PATH_TEMPLATE",
    "artifacts/apps/{application_name}/{sync_unit_id}/{repository}",
)

# HTTP Client Constants
HTTP_TIMEOUT = int(os.getenv("SYNC_HTTP_TIMEOUT", "30"))
HTTP_MAX_RETRIES = int(os.getenv("SYNC_HTTP_MAX_RETRIES", "3"))
HTTP_BASE_WAIT_TIME = int(os.getenv("SYNC_HTTP_BASE_WAIT_TIME", "2"))

# GitHub Constants
GITHUB_API_BASE = os.getenv("SYNC_GITHUB_API_BASE", "https://api.github.com/")
GITHUB_API_VERSION = os.getenv("SYNC_GITHUB_API_VERSION", "2022-11-28")

# Zoho Projects Constants
ZOHO_API_BASE = os.getenv("SYNC_ZOHO_API_BASE", "https://projectsapi.zoho.com/restapi/")
# Wait applied when a 429 carries no usable Retry-After
ZOHO_RATE_LIMIT_WAIT = int(os.getenv("SYNC_ZOHO_RATE_LIMIT_WAIT", "60"))

# Workflow Client Constants
WORKFLOW_HOST = os.getenv("SYNC_WORKFLOW_HOST", "localhost")
WORKFLOW_PORT = os.getenv("SYNC_WORKFLOW_PORT", "7233")
WORKFLOW_NAMESPACE = os.getenv("SYNC_WORKFLOW_NAMESPACE", "default")
MAX_CONCURRENT_ACTIVITIES = int(os.getenv("SYNC_MAX_CONCURRENT_ACTIVITIES", "5"))

# Workflow Constants
HEARTBEAT_TIMEOUT = timedelta(
    seconds=int(os.getenv("SYNC_HEARTBEAT_TIMEOUT", 120))  # 2 minutes
)
START_TO_CLOSE_TIMEOUT = timedelta(
    seconds=int(os.getenv("SYNC_START_TO_CLOSE_TIMEOUT", 15 * 60))  # 15 minutes
)

# Logger Constants
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
