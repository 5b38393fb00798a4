"""Repository-fetch collaborators.

Key classes:
    RepositoryFetcher  - Protocol every fetch collaborator satisfies
    FetchResult        - Files the configuration is known to need
    GitSparseFetcher   - Default collaborator driving git sparse checkout
"""

from .base import FetcherFactory, FetchResult, RepositoryFetcher
from .git import GitSparseFetcher

__all__ = [
    "FetcherFactory",
    "FetchResult",
    "RepositoryFetcher",
    "GitSparseFetcher",
]
