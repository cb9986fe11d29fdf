"""Nightmare Assault: a terminal-style horror text adventure."""

__version__ = "0.1.0"
