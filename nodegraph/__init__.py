"""nodegraph — persistence backend for a node-graph editor."""

__version__ = "0.1.0"
