# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
The peer endpoint lives in a one-line "<address>:<port>" file (see TODO_SYNC_SERVER_CONFIG).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TODO_SYNC_APP_NAME": "App display name (default: todo-sync).",
    "TODO_SYNC_LOG_LEVEL": "Console logging level (default: INFO; the log file is always DEBUG).",
    # Connectors
    "TODO_SYNC_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # Peer
    "TODO_SYNC_SERVER_CONFIG": "Path of the <address>:<port> file (default: <data_dir>/config.txt).",
    "TODO_SYNC_SERVER": "host:port override; wins over the config file.",
    "TODO_SYNC_CONNECT_TIMEOUT_SECONDS": "Connect timeout per command (default: 5).",
    "TODO_SYNC_READ_TIMEOUT_SECONDS": "Optional bound on reading one response (default: unbounded).",
    "TODO_SYNC_POLL_SECONDS": "Connectivity probe interval (default: 15).",
    # Paths (gitignored)
    "TODO_SYNC_DATA_DIR": "Local data directory (default: .local/todo_sync).",
    "TODO_SYNC_TASKS_PATH": "Task list JSON path (default: <data_dir>/tasks.json).",
}

# Example <data_dir>/config.txt (missing or malformed -> 10.0.2.2:11111):
#
#   192.168.1.20:11111
