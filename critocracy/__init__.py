"""Critocracy: game-logic core for a six-role race board game."""

__version__ = "0.1.0"
