"""Option pricing, multi-leg strategy analytics and profit-matrix simulation"""

__version__ = "0.1.0"
