"""Difusão de eventos em tempo real para os clientes WebSocket.

O :class:`Broadcaster` mantém o conjunto de assinantes ativos e entrega cada
mensagem a todos eles. A falha de um assinante nunca interrompe a entrega aos
demais: o assinante com problema é removido e a difusão segue.
"""

from __future__ import annotations

import itertools
import json
import queue
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from flask import current_app, has_app_context

from nimbus.utils.logs import logger

CONNECTED_MESSAGE = {"type": "INFO", "message": "Conectado ao ws"}


class Transport(Protocol):
    def send(self, data: str) -> None:  # pragma: no cover - protocolo
        ...


class SubscriberBackpressure(Exception):
    """A fila do assinante encheu; o cliente não acompanha o ritmo de envio."""


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Valor {value!r} não serializável em JSON")


def encode_message(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=_json_default, ensure_ascii=False)


class Subscription:
    """Handle devolvido por :meth:`Broadcaster.subscribe`."""

    _ids = itertools.count(1)

    def __init__(self, transport: Transport) -> None:
        self.id = next(self._ids)
        self.transport = transport

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Subscription id={self.id} transport={type(self.transport).__name__}>"


class QueuedTransport:
    """Fila limitada por conexão.

    ``send`` nunca bloqueia quem difunde: com a fila cheia levanta
    :class:`SubscriberBackpressure` e o broadcaster descarta o assinante. A
    própria thread da conexão esvazia a fila no socket com :meth:`flush`.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("Transporte já encerrado")
        try:
            self._queue.put_nowait(data)
        except queue.Full as exc:
            raise SubscriberBackpressure("Fila do assinante cheia") from exc

    def pending(self) -> int:
        return self._queue.qsize()

    def flush(self, socket) -> int:
        sent = 0
        while True:
            try:
                data = self._queue.get_nowait()
            except queue.Empty:
                return sent
            socket.send(data)
            sent += 1

    def close(self) -> None:
        self.closed = True


class Broadcaster:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, transport: Transport) -> Subscription:
        """Envia a mensagem de boas-vindas e só então registra o transporte.

        Nenhuma difusão chega ao cliente antes do INFO. Se o envio falhar o
        transporte é fechado e nunca entra no conjunto ativo.
        """

        subscription = Subscription(transport)
        if not self._deliver(subscription, encode_message(CONNECTED_MESSAGE)):
            self._prune([subscription])
            return subscription

        with self._lock:
            self._subscribers[subscription.id] = subscription
        logger.info("Cliente realtime conectado id=%s", subscription.id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        if removed is not None:
            logger.info("Cliente realtime desconectado id=%s", subscription.id)

    def broadcast(self, payload: Dict[str, Any]) -> int:
        """Envia ``payload`` a todos os assinantes ativos e devolve quantos receberam."""

        message = encode_message(payload)
        with self._lock:
            snapshot: List[Subscription] = list(self._subscribers.values())

        delivered = 0
        failed: List[Subscription] = []
        for subscription in snapshot:
            if self._deliver(subscription, message):
                delivered += 1
            else:
                failed.append(subscription)

        if failed:
            self._prune(failed)

        logger.debug(
            "Mensagem %s entregue a %s/%s assinantes",
            payload.get("type"),
            delivered,
            len(snapshot),
        )
        return delivered

    def _deliver(self, subscription: Subscription, message: str) -> bool:
        try:
            subscription.transport.send(message)
            return True
        except SubscriberBackpressure:
            logger.warning(
                "Assinante realtime id=%s não acompanha o envio; descartando",
                subscription.id,
            )
        except Exception:
            logger.exception("Erro ao enviar mensagem ao assinante id=%s", subscription.id)
        return False

    def _prune(self, subscriptions: List[Subscription]) -> None:
        with self._lock:
            for subscription in subscriptions:
                self._subscribers.pop(subscription.id, None)
        for subscription in subscriptions:
            close = getattr(subscription.transport, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    logger.debug("Falha ao fechar transporte id=%s", subscription.id, exc_info=True)


def get_broadcaster(app=None) -> Optional[Broadcaster]:
    if app is None:
        if not has_app_context():
            return None
        app = current_app
    return app.extensions.get("broadcaster")


__all__ = [
    "Broadcaster",
    "CONNECTED_MESSAGE",
    "QueuedTransport",
    "Subscription",
    "SubscriberBackpressure",
    "Transport",
    "encode_message",
    "get_broadcaster",
]
