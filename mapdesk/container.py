"""Wiring of ports to adapters.

A small registry, no framework: each port type maps to a factory, and
factories run on first resolve. Tests build a container from their own
AppConfig, or re-register a port before resolving the WorkflowEngine.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import AppConfig, get_config


@dataclass
class _Binding:
    factory: Callable[[], Any]
    singleton: bool
    instance: Any = None
    built: bool = False


@dataclass
class Container:
    """Port registry for one bot process.

    Usage:
        container = Container.create_default()
        engine = container.resolve(WorkflowEngine)

        container = Container.create_default(config)
        container.register(LocationStorePort, InMemoryLocationStore)

    Attributes:
        config: Settings the default bindings were built from
        caches: The named InMemoryCache instances, for the sweep loop
    """

    config: AppConfig = field(default_factory=get_config)
    caches: Dict[str, Any] = field(default_factory=dict, repr=False)

    _bindings: Dict[type[Any], _Binding] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Bind ``port_type`` to ``factory``, replacing any earlier binding."""
        with self._lock:
            self._bindings[port_type] = _Binding(factory, singleton)

    def resolve(self, port_type: type[Any]) -> Any:
        """Return the instance bound to ``port_type``.

        Raises:
            KeyError: If nothing is bound to the port.
        """
        with self._lock:
            binding = self._bindings.get(port_type)
            if binding is None:
                raise KeyError(f"No binding for {port_type.__name__}")
            if not binding.singleton:
                return binding.factory()
            if not binding.built:
                binding.instance = binding.factory()
                binding.built = True
            return binding.instance

    def reset(self) -> None:
        with self._lock:
            self._bindings.clear()
            self.caches.clear()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Bind every port to the adapter the configuration selects.

        Storage follows ``config.db.backend``; the classifier and the
        semantic matcher follow their strategies. Database engines, HTTP
        sessions and models are only built when first resolved.
        """
        from sqlalchemy import create_engine

        from .adapters.cache import InMemoryCache
        from .adapters.gemini import GeminiClient
        from .adapters.nlp import (
            DisabledNameMatcher,
            DisabledTypeClassifier,
            FuzzyNameMatcher,
            GeminiNameMatcher,
            GeminiTypeClassifier,
        )
        from .adapters.notify import LoggingChangeNotifier, PostgresChangeNotifier
        from .adapters.sessions import InMemoryEditSessionStore
        from .adapters.storage import (
            InMemoryLocationStore,
            InMemoryRequestStore,
            SqlAlchemyLocationStore,
            SqlAlchemyRequestStore,
        )
        from .ports.nlp import NameMatcherPort, TypeClassifierPort
        from .ports.notify import ChangeNotifierPort
        from .ports.sessions import EditSessionStorePort
        from .ports.stores import LocationStorePort, RequestStorePort
        from .services import NameResolver, WorkflowEngine

        config = config or get_config()
        container = cls(config=config)
        db = config.db

        # Caches
        names_cache: InMemoryCache[Any] = InMemoryCache(
            default_ttl_seconds=config.resolver.names_ttl_seconds, name="names"
        )
        draft_cache: InMemoryCache[Any] = InMemoryCache(
            default_ttl_seconds=config.session.draft_ttl_seconds, name="drafts"
        )
        model_cache: InMemoryCache[Any] = InMemoryCache(name="models")
        container.caches = {
            "names": names_cache,
            "drafts": draft_cache,
            "models": model_cache,
        }

        # Database engines, shared when both stores point at one database
        engines: Dict[str, Any] = {}

        def engine_for(url: str) -> Any:
            with container._lock:
                if url not in engines:
                    engines[url] = create_engine(url, echo=db.echo)
                return engines[url]

        # Storage
        if db.backend == "memory":
            container.register(LocationStorePort, InMemoryLocationStore)
            container.register(RequestStorePort, InMemoryRequestStore)
        else:
            container.register(
                LocationStorePort,
                lambda: SqlAlchemyLocationStore(
                    engine_for(db.location_url),
                    create_schema=db.create_location_schema,
                ),
            )
            container.register(
                RequestStorePort,
                lambda: SqlAlchemyRequestStore(engine_for(db.request_url)),
            )

        container.register(
            EditSessionStorePort,
            lambda: InMemoryEditSessionStore(ttl_seconds=config.session.ttl_seconds),
        )

        # Notifications
        def create_notifier() -> ChangeNotifierPort:
            if db.backend == "sql" and db.location_url.startswith("postgresql"):
                return PostgresChangeNotifier(
                    engine_for(db.location_url), channel=db.notify_channel
                )
            return LoggingChangeNotifier()

        container.register(ChangeNotifierPort, create_notifier)

        # NLP
        container.register(GeminiClient, lambda: GeminiClient(config.gemini))

        def create_classifier() -> TypeClassifierPort:
            strategy = config.classifier.strategy
            if strategy == "gemini":
                return GeminiTypeClassifier(
                    container.resolve(GeminiClient),
                    categories=list(config.classifier.categories),
                    timeout_seconds=config.gemini.classify_timeout_seconds,
                )
            elif strategy == "hf_zero_shot":
                from .adapters.nlp import HuggingFaceTypeClassifier

                return HuggingFaceTypeClassifier(
                    model_id=config.classifier.hf_model,
                    categories=list(config.classifier.categories),
                    cache=model_cache,
                    confidence_threshold=config.classifier.confidence_threshold,
                )
            else:
                return DisabledTypeClassifier()

        container.register(TypeClassifierPort, create_classifier)

        def create_matcher() -> NameMatcherPort:
            strategy = config.resolver.semantic_strategy
            if strategy == "gemini":
                return GeminiNameMatcher(
                    container.resolve(GeminiClient),
                    timeout_seconds=config.gemini.match_timeout_seconds,
                )
            elif strategy == "fuzzy":
                return FuzzyNameMatcher(min_score=config.resolver.fuzzy_min_score)
            else:
                return DisabledNameMatcher()

        container.register(NameMatcherPort, create_matcher)

        # Services
        container.register(
            NameResolver,
            lambda: NameResolver(
                locations=container.resolve(LocationStorePort),
                matcher=container.resolve(NameMatcherPort),
                cache=names_cache,
                config=config.resolver,
            ),
        )

        def create_engine_service() -> WorkflowEngine:
            return WorkflowEngine(
                locations=container.resolve(LocationStorePort),
                requests=container.resolve(RequestStorePort),
                sessions=container.resolve(EditSessionStorePort),
                resolver=container.resolve(NameResolver),
                classifier=container.resolve(TypeClassifierPort),
                notifier=container.resolve(ChangeNotifierPort),
                drafts=draft_cache,
                categories=list(config.classifier.categories),
                fallback_category=config.classifier.fallback_category,
            )

        container.register(WorkflowEngine, create_engine_service)

        return container


_default_container: Optional[Container] = None
_default_lock = threading.Lock()


def get_container() -> Container:
    """Process-wide container, built from get_config() on first use."""
    global _default_container
    with _default_lock:
        if _default_container is None:
            _default_container = Container.create_default()
        return _default_container


def reset_container() -> None:
    """Forget the process-wide container (tests)."""
    global _default_container
    with _default_lock:
        if _default_container is not None:
            _default_container.reset()
        _default_container = None
