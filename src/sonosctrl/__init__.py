"""SonosCTRL: a control point for networked multi-room speakers."""

__version__ = "0.1.0"
