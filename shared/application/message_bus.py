"""
Message Bus

Routes commands to their single handler and domain events to every
subscriber. The reservation engine publishes events here after a unit of
work commits; notification, ticketing and payment collaborators subscribe.
"""

from typing import Any, Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__qualname__', None) or repr(handler)


class MessageBus:
    """
    Commands: exactly one handler per command type
    Events: any number of handlers per event type, called in registration order
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._command_handlers: Dict[Type, Callable[[Any], Any]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        self._event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed {_handler_name(handler)} to {event_type.__name__}")

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        """Raises ValueError if the command type already has a handler"""
        if command_type in self._command_handlers:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler
        logger.debug(f"Registered command handler for {command_type.__name__}")

    def handle_command(self, command: Any) -> Any:
        """
        Dispatch a command and return the handler's result

        Handler errors are logged and re-raised.
        """
        name = type(command).__name__
        handler = self._command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for command {name}")

        logger.info(f"Handling command: {name}")
        try:
            return handler(command)
        except Exception as e:
            logger.error(f"Command {name} failed: {e}")
            raise

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver each event to its subscribers

        A failing subscriber is logged and skipped; the rest still run.
        """
        for event in events:
            handlers = self._event_handlers.get(type(event), [])
            if not handlers:
                logger.debug(f"No subscribers for {event.event_type}")
                continue

            logger.info(f"Publishing event: {event.event_type} (ID: {event.event_id})")
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Subscriber {_handler_name(handler)} failed on {event.event_type}: {e}",
                        exc_info=True,
                    )


# Default bus used when a unit of work is built without one
message_bus = MessageBus()
