"""GitHub Actions adapter — workflow commands and environment files."""

from metanorma_setup.adapters.actions.github import GitHubActions  # noqa: F401
