"""Interop bridge: receives order contexts from other applications."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

ContextHandler = Callable[[Any], None]

# Intents the ticket responds to.
ORDER_ENTRY_INTENT = "OrderEntry"
VIEW_INSTRUMENT_INTENT = "ViewInstrument"


class Listener:
    """Handle returned by ``add_intent_listener``."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._unsubscribe()
            self.active = False


class InteropChannel(ABC):
    """Connection to the desktop interop layer."""

    @abstractmethod
    def add_intent_listener(self, intent: str, handler: ContextHandler) -> Listener:
        """Register a handler for an intent.

        Args:
            intent: Intent name, e.g. ``OrderEntry``.
            handler: Called with the raw context of each raised intent.

        Returns:
            Listener that can be unsubscribed.
        """
        pass


class LocalInteropChannel(InteropChannel):
    """In-process channel; ``raise_intent`` delivers to local listeners."""

    def __init__(self):
        self._handlers: dict[str, list[ContextHandler]] = {}

    def add_intent_listener(self, intent: str, handler: ContextHandler) -> Listener:
        self._handlers.setdefault(intent, []).append(handler)
        return Listener(lambda: self._handlers[intent].remove(handler))

    def raise_intent(self, intent: str, context: Any) -> int:
        """Deliver a context to every listener of ``intent``.

        Returns:
            Number of listeners that received it.
        """
        handlers = list(self._handlers.get(intent, ()))
        for handler in handlers:
            handler(context)
        return len(handlers)


class IntentBridge:
    """Process-wide subscription to order intents.

    The bridge keeps no order state: it forwards each raw context to the
    callback given to ``initialize``. Initializing twice is a no-op.
    """

    _instance: Optional["IntentBridge"] = None

    def __init__(self):
        self._initialized = False
        self._listeners: list[Listener] = []

    @classmethod
    def get_instance(cls) -> "IntentBridge":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self, channel: Optional[InteropChannel], on_context: ContextHandler) -> bool:
        """Listen for order intents on ``channel``.

        Returns:
            True if listeners were registered by this call.
        """
        if self._initialized:
            return False
        self._initialized = True

        if channel is None:
            logger.info("No interop channel available, intents disabled")
            return False

        def forward(context: Any) -> None:
            logger.debug("Received context: %r", context)
            on_context(context)

        for intent in (ORDER_ENTRY_INTENT, VIEW_INSTRUMENT_INTENT):
            self._listeners.append(channel.add_intent_listener(intent, forward))
            logger.info("Listening for %s", intent)
        return True

    def shutdown(self) -> None:
        """Unsubscribe every listener so the bridge can be initialized again."""
        for listener in self._listeners:
            listener.unsubscribe()
        self._listeners = []
        self._initialized = False
