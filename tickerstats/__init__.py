"""
Ticker Window Statistics

An in-memory engine that keeps a bounded recent history of simulated
instrument prices and answers mean, correlation and correlation-matrix
queries over a trailing time window.
"""

__version__ = "0.1.0"
