"""FRR resource types, BGP communities, configuration checks and a metrics exporter."""

__version__ = "0.1.0"
__all__ = ["api", "collector", "community", "exporter", "liveness", "vtysh", "webhook"]