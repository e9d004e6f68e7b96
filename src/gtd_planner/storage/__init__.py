"""
Persistence subsystem.

Components:
- codec.py: snapshot <-> JSON document (camelCase keys, ISO dates)
- state_store.py: SQLite key-value slot holding that document
"""
