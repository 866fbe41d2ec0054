"""HTTP API for restocache."""

from restocache.api.app import create_app

__all__ = ["create_app"]
