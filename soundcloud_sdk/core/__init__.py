"""Core Layer — pure request-layer types: JSON nodes, results, errors, protocols.

Invariants:
    - No module in core/ imports from infrastructure/ or services/
    - No IO and no event loop access in core/
"""
