"""MedEasy API console: declarative form dispatch against the MedEasy REST API."""

__version__ = "0.1.0"
