"""Core: configuration, logging, events, protocols and the DI container."""
