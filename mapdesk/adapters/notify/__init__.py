"""Change notifier adapters."""

from .postgres_notifier import LoggingChangeNotifier, PostgresChangeNotifier

__all__ = ["LoggingChangeNotifier", "PostgresChangeNotifier"]
