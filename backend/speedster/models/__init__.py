"""Persistence Models — plain records mapped to MongoDB documents."""

from speedster.models.scan import Scan  # noqa: F401
