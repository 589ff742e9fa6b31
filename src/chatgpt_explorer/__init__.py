"""Browse and search ChatGPT conversation exports."""

__version__ = "0.1.0"
