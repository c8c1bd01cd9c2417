"""FlightWall caching and failover gateway for flight-data providers."""

__version__ = "0.1.0"
