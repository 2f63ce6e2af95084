"""
Task subsystem.

Components:
- task_models.py: data structures (Task, PendingKind, PendingMutation)
- snapshot.py: parser for the GETALL listing
- task_store.py: JSON-file backed store + day views
- pending_queue.py: FIFO of mutations waiting for the peer
"""
