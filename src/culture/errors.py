"""
Exception types raised by the culture simulator.

Every failure of a single simulation request derives from
:class:`CultureError`, so the request boundary in :mod:`culture.service`
can turn it into an error result instead of crashing the caller.
"""

from __future__ import annotations


class CultureError(Exception):
    """Base class for all simulation failures."""


class ConfigurationError(CultureError, ValueError):
    """Invalid request or parameter value (e.g. ``K_m <= 0``, ``t_final <= 0``)."""


class DomainError(CultureError, ArithmeticError):
    """A rate function or derived quantity left its mathematical domain."""


class IntegrationFailure(CultureError):
    """The ODE solver did not converge or produced non-finite state."""


class DegenerateDilutionError(CultureError):
    """Semi-continuous dilution requested for a culture with zero density."""


class SimulationCancelled(CultureError):
    """The run was cancelled or exceeded its time budget."""
