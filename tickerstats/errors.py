"""Custom exceptions for the statistics engine."""


class StatsError(Exception):
    """Base exception for statistics engine errors."""
    pass


class UnknownSymbolError(StatsError, KeyError):
    """Raised when a symbol is not part of the registered symbol set."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Ticker '{symbol}' not found.")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class InvalidWindowError(StatsError, ValueError):
    """Raised when a lookback window is outside the supported range."""
    pass


class EmptyWindowError(StatsError):
    """Raised when a statistic is requested over an empty window."""
    pass


class ConfigError(StatsError):
    """Raised when configuration values are missing or invalid."""
    pass


class IngestionError(StatsError):
    """Raised when a price source fails to produce a value."""
    pass
