"""A graph store with force-directed layout, served and streamed over HTTP."""

__version__ = "0.1.0"