"""Personal GTD task manager: task store, view resolver and persistence."""

__version__ = "0.1.0"
