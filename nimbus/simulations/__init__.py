"""Simuladores usados para alimentar a API em desenvolvimento."""

from .station_simulator import StationSimulator

__all__ = ["StationSimulator"]
