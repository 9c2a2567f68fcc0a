"""Relay HTTP: resuelve username -> userId en nombre del cliente."""

from relay.main import create_app

__all__ = ["create_app"]
