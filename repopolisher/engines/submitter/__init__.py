"""Submission tool adapter — resolve and drive the GitHub CLI."""

from repopolisher.engines.submitter.gh_cli import (
    GhAuthStatus,
    GhCli,
    PRCreateResult,
    PullRequestSpec,
    check_auth,
)
from repopolisher.engines.submitter.resolver import (
    ExecutableNotFound,
    ExecutableResolver,
    ResolvedExecutable,
    build_tool_env,
    get_gh_resolver,
)

__all__ = [
    "ExecutableNotFound",
    "ExecutableResolver",
    "GhAuthStatus",
    "GhCli",
    "PRCreateResult",
    "PullRequestSpec",
    "ResolvedExecutable",
    "build_tool_env",
    "check_auth",
    "get_gh_resolver",
]
