"""Workspace management."""

from pqcscan.workspace.fetcher import RepositoryFetcher, Workspace

__all__ = ["RepositoryFetcher", "Workspace"]
