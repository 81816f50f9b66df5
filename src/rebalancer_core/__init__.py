"""Portfolio rebalancing engine — lot-quantized, margin-aware, drift-dampened."""

__version__ = "0.1.0"
