"""MapDesk - request and approval workflow for community map entries.

Members propose new map entries, edits and removals through chat
commands; moderators approve, amend, deny or undo them. The core is
organised as ports and adapters:

- domain/: immutable models, typed errors, coordinate and snapshot rules
- ports/: Protocol contracts for stores, classifiers and notifiers
- adapters/: SQLAlchemy, in-memory, Gemini, HuggingFace and rapidfuzz
- services/: name resolver, session bootstrap, workflow engine
- interactions/: typed component actions and the response guard
- bot/: the discord.py runtime
"""

__version__ = "0.3.0"
