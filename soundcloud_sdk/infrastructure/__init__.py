"""Infrastructure Layer — HTTP execution, auth retry, context and logging setup.

Invariants:
    - Infrastructure depends on core/, never on services/
    - Every failure crossing an await boundary is a Failure value, not an exception
"""
