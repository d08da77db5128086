"""netprobe: edge-triggered network health prober."""

__version__ = "0.1.0"
