"""Crewspace — workspace collaboration with a two-axis authorization model."""

__version__ = "0.1.0"
