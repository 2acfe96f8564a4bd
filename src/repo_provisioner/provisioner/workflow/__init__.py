"""Provisioning workflow domain concepts.

This package holds:
- result values for non-fatal steps and the fatal precondition error
- the explicit run context threaded through every stage
- the six provisioning stages themselves

Stages return results instead of raising so the driver decides uniformly
whether to continue or abort.
"""

__all__: list[str] = []
