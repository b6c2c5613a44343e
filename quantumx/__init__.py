"""
QuantumX — A Leveling & Utility Bot for Discord
================================================
Listens to gateway events and slash-command interactions, awards
experience for chat activity, keeps an audit trail of every command
invocation, and records bot-wide statistics.

Package layout::

    quantumx/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Leveling formula + reply strings
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (5 tables)
    ├── engine/
    │   ├── leveling.py    # XP roll, cooldown gate, level derivation
    │   └── stats.py       # Bot-wide statistics from a guild snapshot
    ├── services/
    │   ├── store.py               # Single-row reads/writes
    │   ├── experience_service.py  # Award protocol (read → decide → write)
    │   └── lifecycle_service.py   # Connect / join / leave / message
    ├── bot/
    │   ├── core.py        # Bot subclass, dispatch tree, cog loader
    │   ├── commands.py    # Command interface + registry + built-ins
    │   ├── dispatch.py    # Command dispatch + audit logging
    │   └── cogs/
    │       ├── lifecycle.py  # on_guild_join / on_guild_remove
    │       ├── leveling.py   # on_message → XP engine
    │       └── tasks.py      # Periodic stats refresh
    └── api/
        └── main.py        # HTTP status responder
"""

__version__ = "0.1.0"
