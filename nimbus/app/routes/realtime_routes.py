"""WebSocket endpoint ``/ws`` servido pelo flask-sock."""
from __future__ import annotations

from flask import Blueprint, current_app
from simple_websocket import ConnectionClosed

from nimbus.app.extensions import db, sock
from nimbus.app.settings import get_app_settings
from nimbus.services.realtime_service import QueuedTransport
from nimbus.services.station_activity_service import StationActivityService
from nimbus.utils.logs import logger

realtime_bp = Blueprint("realtime", __name__)


def serve_connection(ws, broadcaster, activity_factory, *, queue_size: int, poll_interval: float) -> None:
    """Loop de uma conexão: drena a fila de saída e trata mensagens recebidas."""

    transport = QueuedTransport(maxsize=queue_size)
    subscription = broadcaster.subscribe(transport)
    try:
        while not transport.closed:
            transport.flush(ws)
            message = ws.receive(timeout=poll_interval)
            if message is None:
                continue
            activity_factory().handle_message(message)
    except ConnectionClosed:
        logger.debug("Conexão realtime encerrada pelo cliente id=%s", subscription.id)
    except Exception:
        logger.exception("Erro na conexão realtime id=%s", subscription.id)
    finally:
        broadcaster.unsubscribe(subscription)
        transport.close()


@sock.route("/ws", bp=realtime_bp)
def realtime_channel(ws):
    settings = get_app_settings()
    broadcaster = current_app.extensions["broadcaster"]

    def activity_factory() -> StationActivityService:
        return StationActivityService(session=db.session, broadcaster=broadcaster)

    serve_connection(
        ws,
        broadcaster,
        activity_factory,
        queue_size=settings.realtime.queue_size,
        poll_interval=settings.realtime.poll_interval,
    )


__all__ = ["realtime_bp", "serve_connection"]
