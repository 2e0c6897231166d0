"""Calendar sync service: Nylas OAuth connect flow and webhook-driven event mirroring."""

__version__ = "0.1.0"
