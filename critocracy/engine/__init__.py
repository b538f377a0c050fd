"""Automated player policies."""

from critocracy.engine.agents import Agent, RandomAgent, HeuristicAgent, create_agent

__all__ = ["Agent", "RandomAgent", "HeuristicAgent", "create_agent"]
