"""Infrastructure Layer — MongoDB gateway, Lighthouse subprocess, logging.

Invariants:
    - Driver and subprocess failures mapped to SpeedsterError subclasses (core/errors.py)
"""
