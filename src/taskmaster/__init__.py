"""
Task Master: a shared task list served over a small HTTP API.

Server entry point: taskmaster.main (create_app, run).
Client side: taskmaster.client (HTTP client) and taskmaster.session
(connection/sync state machine).
"""

__version__ = "0.1.0"
