"""Reporting - rich console output."""

from cors_diagnoser.reporting.console import DiagnosisPrinter

__all__ = ["DiagnosisPrinter"]
