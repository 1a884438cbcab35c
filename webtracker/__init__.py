"""Live network traffic statistics: capture, CSV logging and graphing over time."""

__version__ = "0.1.0"