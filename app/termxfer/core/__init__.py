"""Core services: configuration, persistence, remote facade and transfers."""
