"""
Service layer: remote API clients.
"""

from .github_api import GitHubContentStore

__all__ = ["GitHubContentStore"]
