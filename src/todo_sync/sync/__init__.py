"""
Sync subsystem.

Components:
- protocol.py: command encoding and "|END" response framing
- client.py: one-connection-per-command TCP client
- engine.py: offline/syncing/online state machine, replay and resync
- connectivity.py: peer probing loop + background event loop runner
"""
