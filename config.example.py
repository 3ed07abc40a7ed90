# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (the API token). Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Logging level (default: INFO).",
    # Console
    "TASKFLOW_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # API / push channel
    "TASKFLOW_API_URL": "API root (default: http://localhost:5004/api; VITE_API_URL is also read).",
    "TASKFLOW_SOCKET_URL": "Socket.IO origin (default: API URL without the trailing /api).",
    "TASKFLOW_API_TOKEN": "Bearer token for the REST API.",
    "TASKFLOW_USER_ID": "Authenticated user id (joins the per-user push room, owns timers).",
    "TASKFLOW_HTTP_TIMEOUT_SECONDS": "HTTP request timeout (default: 10).",
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory (default: .local/taskflow).",
    "TASKFLOW_STORAGE_PATH": "Key/value storage JSON path (default: <data_dir>/local_storage.json).",
    # Tuning
    "TASKFLOW_NOTIFICATIONS_LIMIT": "How many notifications the inbox fetches (default: 10).",
    "TASKFLOW_INBOX_REFRESH_SECONDS": "Periodic inbox pull interval (default: 60).",
    "TASKFLOW_TIMER_RECONCILE_SECONDS": "Periodic timer check against the server (default: 30).",
    "TASKFLOW_TIMER_TICK_SECONDS": "Timer display tick (default: 1).",
}
