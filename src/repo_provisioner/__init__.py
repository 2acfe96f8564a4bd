"""Repository provisioner.

Provides a one-shot CLI that:
- checks local tooling (git, node, npm, optionally gh)
- commits the working tree and links it to a hosted repository
- pushes a fixed feature-branch scaffold and opens pull requests
- optionally creates storage buckets and runs a local setup routine
"""

__version__ = "0.1.0"

from repo_provisioner.provisioner.config import ProvisionerSettings

__all__ = ["__version__", "ProvisionerSettings"]
