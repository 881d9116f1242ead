"""Route group exports."""

from . import coverage, health, metrics, representatives, territories, zones

__all__ = ["coverage", "health", "metrics", "representatives", "territories", "zones"]
