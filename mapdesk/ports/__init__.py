"""Ports layer - Abstract interfaces (Protocols) for the application.

Ports define the contracts between the workflow core and external
adapters. They enable dependency injection and make the system testable.
"""

from .cache import CachePort
from .nlp import NameMatcherPort, TypeClassifierPort
from .notify import ChangeNotifierPort
from .sessions import EditSessionStorePort
from .stores import LocationStorePort, RequestStorePort
from .surface import MessageProbePort

__all__ = [
    # Storage
    "LocationStorePort",
    "RequestStorePort",
    "EditSessionStorePort",
    # NLP
    "TypeClassifierPort",
    "NameMatcherPort",
    # Side effects
    "ChangeNotifierPort",
    "MessageProbePort",
    # Cache
    "CachePort",
]
