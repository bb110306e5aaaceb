"""graverip: a graveyard for files you rip instead of rm."""

__version__ = "0.1.0"
