"""mdls - markdown language server with wiki-link completion and live preview."""

__version__ = "0.1.0"
