"""Node agent: token-gated HTTP API next to the sing-box engine."""

__version__ = "1.0.0"
