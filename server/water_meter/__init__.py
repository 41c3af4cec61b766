"""Water meter reading extraction from photographs."""

__version__ = "1.0.0"
