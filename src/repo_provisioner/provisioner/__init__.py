"""Provisioning components.

- Settings loaded from .env
- Logging (text or JSON)
- Thin wrappers over git, gh and the storage REST API
- The staged provisioning workflow and its CLI
"""
