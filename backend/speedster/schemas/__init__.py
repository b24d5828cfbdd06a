"""Pydantic Schemas — request/response contracts for the /scans endpoints.

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
