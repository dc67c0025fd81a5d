"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Attachment, Priority, TaskStatus)
- task_store.py: SQLite-backed storage scoped per user
- task_api.py: high-level operations used by the front-ends
"""
