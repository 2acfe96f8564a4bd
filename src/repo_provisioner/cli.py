"""Console script entrypoint.

The implementation lives in `repo_provisioner.provisioner.main`.
"""

from __future__ import annotations

from repo_provisioner.provisioner.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
