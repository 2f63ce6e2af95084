"""
todo_sync: a local task list kept in step with a remote task peer.

Subpackages:
- tasks: data structures, the snapshot parser, the JSON store and the pending queue
- sync: wire codec, TCP command client, sync engine, connectivity watcher
- cli / connectors: console front-end and composition root
"""

__version__ = "0.1.0"
