from flask import request
from flask_socketio import emit
from blockclaim import get_gateway
from blockclaim.services.grid import Connection
from blockclaim.services.grid.errors import DeliveryFailure


class SocketIOTransport:
    """Delivers encoded events to one Socket.IO client by sid."""

    def __init__(self, socketio):
        self.socketio = socketio

    def send(self, connection, event_name: str, payload: dict) -> None:
        server = self.socketio.server
        if server is None or not server.manager.is_connected(connection.sid, connection.namespace):
            raise DeliveryFailure(f"{connection.sid} is not connected to {connection.namespace}")
        try:
            self.socketio.emit(event_name, payload, to=connection.sid, namespace=connection.namespace)
        except (KeyError, OSError) as exc:
            raise DeliveryFailure(str(exc)) from exc


def _connection() -> Connection:
    # type: ignore: request.sid exists in Socket.IO context
    return Connection(request.sid, request.namespace)  # type: ignore


def handle_connect(auth=None):
    get_gateway().connect(_connection())


def handle_disconnect(reason=None):
    get_gateway().disconnect(_connection())


def handle_claim(data):
    data = data if isinstance(data, dict) else {}
    get_gateway().handle_claim_request(_connection(), data.get('x'), data.get('y'))


def handle_rename(data):
    # Accept either {"name": "..."} or a bare string
    new_name = data.get('name') if isinstance(data, dict) else data
    get_gateway().handle_rename_request(_connection(), new_name)


def handle_request_snapshot(data=None):
    get_gateway().resync(_connection())


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    from blockclaim import socketio

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('claim', handle_claim, namespace=namespace)
    socketio.on_event('rename', handle_rename, namespace=namespace)
    socketio.on_event('request-snapshot', handle_request_snapshot, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
