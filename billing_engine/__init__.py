"""Multi-model billing engine: calculators, invoicing and auto-invoicing sweeps."""

__version__ = "1.0.0"
