"""GhCli — commit a working copy and open a pull request with the GitHub CLI."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path

import structlog

from repopolisher.engines.submitter.resolver import (
    ExecutableResolver,
    ResolvedExecutable,
    build_tool_env,
    get_gh_resolver,
)
from repopolisher.services import ToolNotInstalledError

log = structlog.get_logger("repopolisher.engine")

_PR_URL_RE = re.compile(r"https://\S+/pull/(\d+)")
_GH_VERSION_RE = re.compile(r"gh version ([\d.]+)")

PUSH_PERMISSIONS = frozenset({"ADMIN", "MAINTAIN", "WRITE"})
FORK_REMOTE = "fork"


@dataclass
class PullRequestSpec:
    title: str
    body: str
    branch: str
    base_branch: str = "main"


@dataclass
class PRCreateResult:
    success: bool
    pr_url: str | None = None
    pr_number: int | None = None
    error: str | None = None


@dataclass
class GhAuthStatus:
    installed: bool = False
    version: str | None = None
    authenticated: bool = False
    username: str | None = None


@dataclass
class _Completed:
    returncode: int | None
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout or self.stderr).strip()


async def _resolve_command(resolver: ExecutableResolver) -> tuple[str, dict[str, str]]:
    result = await resolver.aresolve()
    if isinstance(result, ResolvedExecutable):
        return result.path, build_tool_env([result.directory])
    # let the spawn decide; a missing binary surfaces as ToolNotInstalledError
    return resolver.name, build_tool_env()


async def _exec(program: str, args: list[str], cwd: Path | None, env: dict[str, str]) -> _Completed:
    try:
        proc = await asyncio.create_subprocess_exec(
            program,
            *args,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ToolNotInstalledError(f"{program} is not installed or not on PATH") from exc
    stdout, stderr = await proc.communicate()
    return _Completed(
        proc.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


class GhCli:
    """Drive ``git`` and ``gh`` inside *work_dir* to publish a branch as a PR.

    Without an explicit *executable* the ``gh`` binary is resolved on first
    use, in a worker thread.
    """

    def __init__(
        self,
        work_dir: str | Path,
        executable: str | None = None,
        resolver: ExecutableResolver | None = None,
    ) -> None:
        self.work_dir = Path(work_dir)
        self._resolver = resolver
        self._command: tuple[str, dict[str, str]] | None = None
        if executable:
            self._command = (executable, build_tool_env([str(Path(executable).parent)]))

    async def _resolved(self) -> tuple[str, dict[str, str]]:
        if self._command is None:
            self._command = await _resolve_command(self._resolver or get_gh_resolver())
        return self._command

    async def _gh(self, *args: str) -> _Completed:
        gh, env = await self._resolved()
        return await _exec(gh, list(args), self.work_dir, env)

    async def _git(self, *args: str) -> _Completed:
        _, env = await self._resolved()
        return await _exec("git", list(args), self.work_dir, env)

    async def create_pr(self, spec: PullRequestSpec) -> PRCreateResult:
        """Commit all changes onto *spec.branch*, push, and open the PR.

        Step failures are reported through ``PRCreateResult.error``; a
        missing ``git``/``gh`` binary raises :class:`ToolNotInstalledError`.
        """
        for step in (
            ("checkout", "-B", spec.branch),
            ("add", "-A"),
            ("commit", "-m", spec.title),
        ):
            done = await self._git(*step)
            if not done.ok:
                return self._failed(f"git {step[0]}", done)

        head = spec.branch
        permission = await self._gh(
            "repo", "view", "--json", "viewerPermission", "-q", ".viewerPermission"
        )
        if permission.ok and permission.stdout.strip() in PUSH_PERMISSIONS:
            pushed = await self._git("push", "--force", "--set-upstream", "origin", spec.branch)
            if not pushed.ok:
                return self._failed("git push", pushed)
        else:
            login = await self._gh("api", "user", "-q", ".login")
            if not login.ok or not login.stdout.strip():
                return self._failed("gh api user", login)
            has_fork = await self._git("remote", "get-url", FORK_REMOTE)
            if not has_fork.ok:
                forked = await self._gh("repo", "fork", "--remote", "--remote-name", FORK_REMOTE)
                if not forked.ok:
                    return self._failed("gh repo fork", forked)
            pushed = await self._git("push", "--force", "--set-upstream", FORK_REMOTE, spec.branch)
            if not pushed.ok:
                return self._failed("git push", pushed)
            head = f"{login.stdout.strip()}:{spec.branch}"

        created = await self._gh(
            "pr",
            "create",
            "--base",
            spec.base_branch,
            "--head",
            head,
            "--title",
            spec.title,
            "--body",
            spec.body,
        )
        if not created.ok:
            return self._failed("gh pr create", created)

        match = _PR_URL_RE.search(created.stdout)
        if match is None:
            return PRCreateResult(
                success=False, error=f"could not parse PR URL from: {created.output}"
            )
        log.info("gh.pr_created", url=match.group(0), head=head, base=spec.base_branch)
        return PRCreateResult(success=True, pr_url=match.group(0), pr_number=int(match.group(1)))

    @staticmethod
    def _failed(step: str, done: _Completed) -> PRCreateResult:
        log.warning("gh.step_failed", step=step, exit_code=done.returncode, output=done.output)
        return PRCreateResult(success=False, error=f"{step} failed: {done.output}")


async def check_auth(resolver: ExecutableResolver | None = None) -> GhAuthStatus:
    """Report whether ``gh`` is installed and logged in."""
    status = GhAuthStatus()
    result = await (resolver or get_gh_resolver()).aresolve()
    if not isinstance(result, ResolvedExecutable):
        return status

    status.installed = True
    match = _GH_VERSION_RE.search(result.version)
    status.version = match.group(1) if match else result.version

    env = build_tool_env([result.directory])
    try:
        auth = await _exec(result.path, ["auth", "status"], None, env)
    except ToolNotInstalledError:
        return GhAuthStatus()
    if auth.ok or "Logged in" in auth.output:
        status.authenticated = True
        user = await _exec(result.path, ["api", "user", "-q", ".login"], None, env)
        if user.ok:
            status.username = user.stdout.strip() or None
    return status
