"""Reporters - Run recording."""

from forkline.reporters.flight_recorder import FlightRecorder, LogEntry

__all__ = ["FlightRecorder", "LogEntry"]
