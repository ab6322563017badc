"""autoprice.api — Read-only HTTP API over stored snapshots."""

from autoprice.api.app import create_app

__all__ = ["create_app"]
