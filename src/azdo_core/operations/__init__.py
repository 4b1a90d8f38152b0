"""Passthrough operations over the Azure DevOps capability sub-clients.

Each operation takes the authenticated connection as its first argument and
returns plain JSON-compatible data.
"""
from . import organizations, projects, pull_requests, repositories, work_items

__all__ = ["organizations", "projects", "pull_requests", "repositories", "work_items"]
