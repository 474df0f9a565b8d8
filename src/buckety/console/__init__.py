"""
Console do Buckety.

Observadores de terminal para o canal de pipeline (rich).
"""

from .reporter import ConsoleReporter, render_event

__all__ = ["ConsoleReporter", "render_event"]
