"""StagePilot: input list and stage plan compiler for live bands."""

__version__ = "0.4.0"
