"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Routes never talk to the driver directly (delegate to ScanRepository)
"""
