"""Workspace engine — materialize project working copies."""

from repopolisher.engines.workspace.materializer import RepositoryMaterializer, WorkingCopy
from repopolisher.engines.workspace.repo import GitCommandError, run_git

__all__ = ["GitCommandError", "RepositoryMaterializer", "WorkingCopy", "run_git"]
