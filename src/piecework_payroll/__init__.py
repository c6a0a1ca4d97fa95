"""Piecework payroll engine with quality-gated partial approval."""

__version__ = "0.1.0"
