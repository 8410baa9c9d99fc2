#!/usr/bin/env python3
# nimbus/jobs/fleet_health_job.py
"""
Job de resumo da saúde da frota de estações.

A cada intervalo conta quantas estações estão ONLINE/OFFLINE (pelo status mais
recente de cada uma), soma o volume enviado no dia e difunde uma mensagem
``LOG_SUMMARY`` para os clientes realtime.

Uso avulso (uma execução):
    python -m nimbus.jobs.fleet_health_job
"""

from __future__ import annotations

import enum
import threading
import time
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import schedule
from flask import Flask, has_app_context

from nimbus.app import create_app
from nimbus.app.settings import get_app_settings
from nimbus.repository.Station_repository import StationLogRepo, StationStatusRepo
from nimbus.services.realtime_service import Broadcaster, get_broadcaster
from nimbus.utils.dates import format_br, local_today, utc_now
from nimbus.utils.logs import logger


class AggregatorState(enum.Enum):
    IDLE = "IDLE"
    COLLECTING = "COLLECTING"
    COMPUTING = "COMPUTING"
    PUBLISHING = "PUBLISHING"


class AggregationTimeout(Exception):
    """A execução passou do tempo máximo configurado."""


def kb_to_mb(kb: int) -> float:
    return round((kb or 0) / 1024, 2)


def build_summary(counts: Dict[str, int], kb_today: int, now: datetime, tz: str) -> Dict[str, Any]:
    online = int(counts.get("ONLINE", 0))
    offline = int(counts.get("OFFLINE", 0))
    return {
        "online": online,
        "offline": offline,
        "total": online + offline,
        "dataSentTodayMB": kb_to_mb(kb_today),
        "timestamp": format_br(now, tz),
    }


def compute_fleet_summary(session=None, tz: str = "UTC", now: Optional[datetime] = None) -> Dict[str, Any]:
    """Resumo sob demanda, sem difusão (usado pela API)."""

    current = now or utc_now()
    counts = StationStatusRepo(session=session).latest_status_counts()
    kb_today = StationLogRepo(session=session).sum_data_sent_for_day(
        local_today(tz, current), tz
    )
    return build_summary(counts, kb_today, current, tz)


class FleetHealthAggregator:
    def __init__(
        self,
        app: Flask,
        broadcaster: Optional[Broadcaster] = None,
        *,
        max_run_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        settings = get_app_settings(app)
        self.app = app
        self.broadcaster = broadcaster if broadcaster is not None else get_broadcaster(app)
        self.tz = settings.timezone
        self.max_run_seconds = (
            max_run_seconds if max_run_seconds is not None else settings.aggregator.max_run_seconds
        )
        self._clock = clock
        self._now = now
        self._run_lock = threading.Lock()
        self.state = AggregatorState.IDLE

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    def run_once(self) -> Optional[Dict[str, Any]]:
        """Executa um ciclo completo; devolve a mensagem publicada ou ``None``."""

        if not self._run_lock.acquire(blocking=False):
            logger.warning("Resumo da frota ainda em execução; tick ignorado")
            return None

        try:
            logger.process("Executando job de resumo da frota")
            ctx = nullcontext() if has_app_context() else self.app.app_context()
            with ctx:
                return self._run()
        except AggregationTimeout as exc:
            logger.error("Resumo da frota abortado: %s", exc)
            return None
        except Exception:
            logger.exception("Erro ao gerar resumo da frota")
            return None
        finally:
            self.state = AggregatorState.IDLE
            self._run_lock.release()

    def _check_deadline(self, deadline: float, step: str) -> None:
        if self._clock() > deadline:
            raise AggregationTimeout(
                f"tempo máximo de {self.max_run_seconds}s excedido em '{step}'"
            )

    def _run(self) -> Dict[str, Any]:
        deadline = self._clock() + self.max_run_seconds
        now = self._now()

        self.state = AggregatorState.COLLECTING
        counts = StationStatusRepo().latest_status_counts()
        self._check_deadline(deadline, "status das estações")
        kb_today = StationLogRepo().sum_data_sent_for_day(local_today(self.tz, now), self.tz)
        self._check_deadline(deadline, "volume do dia")

        self.state = AggregatorState.COMPUTING
        data = build_summary(counts, kb_today, now, self.tz)
        self._check_deadline(deadline, "cálculo do resumo")

        self.state = AggregatorState.PUBLISHING
        payload = {"type": "LOG_SUMMARY", "data": data}
        if self.broadcaster is not None:
            delivered = self.broadcaster.broadcast(payload)
            logger.info(
                "LOG_SUMMARY online=%s offline=%s MB=%s entregue a %s cliente(s)",
                data["online"],
                data["offline"],
                data["dataSentTodayMB"],
                delivered,
            )
        return payload


class FleetHealthScheduler:
    """Agenda o :class:`FleetHealthAggregator` em uma thread daemon."""

    def __init__(
        self,
        aggregator: FleetHealthAggregator,
        interval_seconds: int = 60,
        poll_seconds: float = 1.0,
    ) -> None:
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self.poll_seconds = poll_seconds
        self.scheduler = schedule.Scheduler()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _dispatch(self) -> None:
        # cada tick roda em sua própria thread; a trava do agregador descarta sobreposições
        worker = threading.Thread(
            target=self.aggregator.run_once, name="fleet-health-run", daemon=True
        )
        worker.start()

    def _run_scheduler(self) -> None:
        while not self._stop_event.is_set():
            self.scheduler.run_pending()
            self._stop_event.wait(self.poll_seconds)

    def start(self) -> None:
        if self.is_running:
            return
        self.scheduler.clear()
        self.scheduler.every(self.interval_seconds).seconds.do(self._dispatch)
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_scheduler, name="fleet-health-scheduler", daemon=True
        )
        self._thread.start()
        logger.info("Job de resumo da frota agendado a cada %ss", self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.scheduler.clear()


def create_fleet_health_scheduler(app: Flask) -> FleetHealthScheduler:
    settings = get_app_settings(app)
    aggregator = FleetHealthAggregator(app)
    return FleetHealthScheduler(aggregator, interval_seconds=settings.aggregator.interval_seconds)


if __name__ == "__main__":
    FleetHealthAggregator(create_app()).run_once()
