#!/usr/bin/env python3
"""
Simulador de estação meteorológica.

Uso:
  python -m nimbus.simulations.station_simulator --station EST001 --interval 15

Descrição:
- A cada intervalo alterna o status da estação entre ONLINE e OFFLINE.
- Envia um volume aleatório (50-500 KB) e um registro de processamento.
- Opcionalmente envia uma medida aleatória para um parâmetro (--parameter).
"""
from __future__ import annotations

import argparse
import random
import time
from typing import Any, Dict, List, Optional

import requests

from nimbus.utils.logs import logger

DEFAULT_API_URL = "http://localhost:5000/api"


class StationSimulator:
    def __init__(
        self,
        station_id: str = "EST001",
        api_url: str = DEFAULT_API_URL,
        *,
        parameter_id: Optional[int] = None,
        value_range: tuple = (0.0, 40.0),
        timeout: float = 5.0,
        http: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.station_id = station_id
        self.api_url = api_url.rstrip("/")
        self.parameter_id = parameter_id
        self.value_range = value_range
        self.timeout = timeout
        self.http = http or requests.Session()
        self.rng = rng or random.Random()
        self.last_status = "OFFLINE"

    def next_status(self) -> str:
        self.last_status = "ONLINE" if self.last_status == "OFFLINE" else "OFFLINE"
        return self.last_status

    def _post(self, path: str, payload: Dict[str, Any]) -> Optional[requests.Response]:
        url = f"{self.api_url}{path}"
        try:
            response = self.http.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Falha ao enviar %s: %s", url, exc)
            return None
        if response.status_code >= 400:
            logger.warning("%s respondeu %s: %s", url, response.status_code, response.text)
        return response

    def tick(self) -> List[Optional[requests.Response]]:
        """Envia um ciclo completo de heartbeats (e medida, se configurada)."""

        status = self.next_status()
        data_sent = self.rng.randint(50, 500)
        logger.info("[%s] status=%s data_sent=%sKB", self.station_id, status, data_sent)

        responses = [
            self._post("/station-status", {"station_id": self.station_id, "status": status}),
            self._post("/station-logs", {"station_id": self.station_id, "data_sent": data_sent}),
            self._post("/processing-logs", {}),
        ]
        if self.parameter_id is not None:
            low, high = self.value_range
            responses.append(
                self._post(
                    "/measurements",
                    {
                        "parameter_id": self.parameter_id,
                        "value": round(self.rng.uniform(low, high), 2),
                        "timestamp": int(time.time()),
                    },
                )
            )
        return responses

    def run(self, interval: float = 15.0, iterations: Optional[int] = None) -> None:
        count = 0
        while iterations is None or count < iterations:
            self.tick()
            count += 1
            if iterations is None or count < iterations:
                time.sleep(interval)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Simulador de heartbeats de estação")
    p.add_argument("--station", default="EST001", help="Identificador da estação")
    p.add_argument("--api-url", default=DEFAULT_API_URL, help="URL base da API")
    p.add_argument("--interval", type=float, default=15.0, help="Intervalo entre envios (s)")
    p.add_argument("--iterations", type=int, default=None, help="Número de ciclos (padrão: infinito)")
    p.add_argument("--parameter", type=int, default=None, help="Parâmetro para medidas aleatórias")
    p.add_argument("--timeout", type=float, default=5.0, help="Timeout HTTP (s)")
    return p.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    logger.process(f"Simulando estação {args.station} contra {args.api_url}")
    StationSimulator(
        args.station,
        args.api_url,
        parameter_id=args.parameter,
        timeout=args.timeout,
    ).run(args.interval, args.iterations)
