"""Model Prober - check which provider models answer under an API key."""

__version__ = "0.1.0"
