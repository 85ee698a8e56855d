import logging
import threading
from typing import Callable, Optional, Protocol

from .errors import DeliveryFailure
from .events import encode

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, connection, event_name: str, payload: dict) -> None:
        """Queue one message for ``connection``; raise DeliveryFailure if it is gone."""


class BroadcastChannel:
    """Fans events out to every active connection.

    A recipient whose delivery fails is dropped and handed to ``on_failure``
    once the fan-out is done, so one dead socket never stops the others.
    """

    def __init__(self, transport: Transport, on_failure: Optional[Callable] = None):
        self.transport = transport
        self.on_failure = on_failure
        self._lock = threading.Lock()
        self._recipients = {}

    def add(self, connection) -> None:
        with self._lock:
            self._recipients[connection] = None

    def remove(self, connection) -> bool:
        with self._lock:
            if connection not in self._recipients:
                return False
            del self._recipients[connection]
            return True

    def recipients(self):
        with self._lock:
            return list(self._recipients)

    def __contains__(self, connection) -> bool:
        return connection in self._recipients

    def __len__(self) -> int:
        return len(self._recipients)

    def send(self, connection, event) -> bool:
        name, payload = encode(event)
        if not self._deliver(connection, name, payload):
            self._report_failures([connection])
            return False
        return True

    def broadcast(self, event, exclude=None) -> int:
        """Deliver ``event`` to all active recipients but ``exclude``.

        Returns the number of successful deliveries.
        """
        name, payload = encode(event)
        delivered = 0
        failed = []
        for connection in self.recipients():
            if connection == exclude:
                continue
            if self._deliver(connection, name, payload):
                delivered += 1
            else:
                failed.append(connection)
        if failed:
            self._report_failures(failed)
        return delivered

    def _deliver(self, connection, name: str, payload: dict) -> bool:
        try:
            self.transport.send(connection, name, payload)
        except DeliveryFailure as exc:
            logger.warning(f"[delivery-failed] event={name} to={connection}: {exc}")
            self.remove(connection)
            return False
        return True

    def _report_failures(self, connections) -> None:
        if self.on_failure is None:
            return
        for connection in connections:
            self.on_failure(connection)
