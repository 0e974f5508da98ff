"""Atlas - infrastructure topology tree and security compliance engine."""

__version__ = "0.1.0"
