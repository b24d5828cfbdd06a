"""Core Layer — pure request decoding, domain types and errors. No IO, no DB.

Invariants:
    - No module in core/ imports from api/ or infrastructure/
    - Functions are pure and deterministic
"""
