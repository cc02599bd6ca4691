"""Tests for PRSubmitter — real SQLite and files, faked git/gh."""

from __future__ import annotations

import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from factories import seed_issues, seed_project
from repopolisher.core.events import EventBus, EventType
from repopolisher.core.locks import ProjectLocks
from repopolisher.dao.analysis_task_dao import AnalysisTaskDAO
from repopolisher.dao.issue_dao import IssueDAO
from repopolisher.dao.pr_draft_dao import PRDraftDAO
from repopolisher.dao.project_dao import ProjectDAO
from repopolisher.engines.fix_applier import apply_fixes
from repopolisher.engines.pr_submitter import PRSubmitter
from repopolisher.engines.submitter import PRCreateResult
from repopolisher.engines.workspace import RepositoryMaterializer, WorkingCopy
from repopolisher.services import NoFixableIssuesError, ToolExecutionError, ValidationError
from repopolisher.services.analysis_service import AnalysisService
from repopolisher.services.pr_draft_service import PRDraftService
from repopolisher.services.project_service import ProjectService

PR_URL = "https://github.com/acme/widget/pull/12"
_SUBMITTER = "repopolisher.engines.pr_submitter.submitter"


class Harness:
    """Wires a PRSubmitter around a fake working copy and a fake gh."""

    def __init__(self, repo_dir, pr_result: PRCreateResult) -> None:
        self.issue_dao = IssueDAO()
        analysis = AnalysisService(AnalysisTaskDAO(), self.issue_dao)
        self.drafts = PRDraftService(PRDraftDAO(), ProjectDAO(), self.issue_dao, analysis)

        self.materializer = MagicMock(spec=RepositoryMaterializer)
        self.materializer.ensure_working_copy = AsyncMock(
            return_value=WorkingCopy(path=repo_dir, owner="acme", repo="widget")
        )
        projects = ProjectService(ProjectDAO(), github=MagicMock(), materializer=self.materializer)

        self.gh = MagicMock()
        self.gh.create_pr = AsyncMock(return_value=pr_result)
        self.gh_paths: list = []

        def gh_factory(path):
            self.gh_paths.append(path)
            return self.gh

        self.events = EventBus()
        self.published: list = []
        self.events.on_any(self.published.append)

        self.submitter = PRSubmitter(
            self.drafts,
            projects,
            self.issue_dao,
            self.materializer,
            self.events,
            ProjectLocks(),
            gh_factory=gh_factory,
        )

    async def seed_draft(self, session_factory, *, missing_file: bool = True, **issue_overrides):
        async with session_factory() as session:
            async with session.begin():
                project = await seed_project(session)
                issues = await seed_issues(session, project, 2, **issue_overrides)
                if missing_file:
                    issues += await seed_issues(session, project, 1, file_path="docs/gone.md")
                created = await self.drafts.create(session, project.id, [i.id for i in issues])
        return project, issues, created.draft_id

    async def draft_and_statuses(self, session_factory, draft_id, project_id):
        async with session_factory() as session:
            draft = await self.drafts.get(session, draft_id)
            issues = await self.issue_dao.list_by_project(session, project_id)
        return draft, {i.id: i.status for i in issues}


@pytest.fixture
def repo_dir(tmp_path):
    path = tmp_path / "widget"
    path.mkdir()
    (path / "README.md").write_text("teh widget\nteh gadget\n")
    return path


class TestGhCliSubmission:
    async def test_success_reconciles_every_issue(self, session_factory, repo_dir):
        harness = Harness(repo_dir, PRCreateResult(success=True, pr_url=PR_URL, pr_number=12))
        project, issues, draft_id = await harness.seed_draft(session_factory)

        result = await harness.submitter.submit(session_factory, draft_id, "gh-cli")

        assert result.success is True
        assert result.message == "Pull request created"
        assert (result.pr_url, result.pr_number) == (PR_URL, 12)
        assert result.warnings == ["File not found: docs/gone.md"]
        assert (repo_dir / "README.md").read_text() == "the widget\nthe gadget\n"

        draft, statuses = await harness.draft_and_statuses(session_factory, draft_id, project.id)
        assert draft.status == "submitted"
        assert draft.submit_method == "gh-cli"
        assert draft.pr_url == PR_URL
        assert draft.files == [{"path": "README.md", "additions": 2, "deletions": 2}]
        assert statuses[issues[0].id] == statuses[issues[1].id] == "fixed"
        assert statuses[issues[2].id] == "open"
        assert set(statuses.values()) <= {"fixed", "open"}

        spec = harness.gh.create_pr.await_args.args[0]
        assert spec.branch == draft.branch
        assert spec.base_branch == "main"
        assert spec.title == draft.title
        assert harness.gh_paths == [repo_dir]
        harness.materializer.ensure_working_copy.assert_awaited_once()
        assert harness.materializer.ensure_working_copy.await_args.kwargs == {
            "for_submission": True
        }
        assert harness.published[-1].type == EventType.PR_SUBMITTED

    async def test_pr_failure_leaves_draft_untouched(self, session_factory, repo_dir):
        harness = Harness(
            repo_dir, PRCreateResult(success=False, error="git push failed: permission denied")
        )
        project, _, draft_id = await harness.seed_draft(session_factory)

        with pytest.raises(ToolExecutionError, match="permission denied") as excinfo:
            await harness.submitter.submit(session_factory, draft_id, "gh-cli")

        assert excinfo.value.warnings == ["File not found: docs/gone.md"]
        draft, statuses = await harness.draft_and_statuses(session_factory, draft_id, project.id)
        assert draft.status == "draft"
        assert draft.pr_url is None
        assert set(statuses.values()) == {"included"}
        assert harness.published == []

    async def test_nothing_fixable(self, session_factory, repo_dir):
        harness = Harness(repo_dir, PRCreateResult(success=True, pr_url=PR_URL, pr_number=12))
        project, _, draft_id = await harness.seed_draft(
            session_factory, missing_file=False, suggestion=None
        )

        with pytest.raises(NoFixableIssuesError):
            await harness.submitter.submit(session_factory, draft_id, "gh-cli")

        harness.gh.create_pr.assert_not_awaited()
        draft, _ = await harness.draft_and_statuses(session_factory, draft_id, project.id)
        assert draft.status == "draft"

    async def test_fixes_written_off_the_event_loop(self, session_factory, repo_dir):
        harness = Harness(repo_dir, PRCreateResult(success=True, pr_url=PR_URL, pr_number=12))
        _, _, draft_id = await harness.seed_draft(session_factory, missing_file=False)
        writer_threads: list[int] = []

        def recording_apply(path, issues):
            writer_threads.append(threading.get_ident())
            return apply_fixes(path, issues)

        with patch(f"{_SUBMITTER}.apply_fixes", side_effect=recording_apply):
            result = await harness.submitter.submit(session_factory, draft_id, "gh-cli")

        assert result.success is True
        assert writer_threads and threading.get_ident() not in writer_threads
        assert (repo_dir / "README.md").read_text() == "the widget\nthe gadget\n"


class TestLocalSubmission:
    async def test_local_records_submission_only(self, session_factory, repo_dir):
        harness = Harness(repo_dir, PRCreateResult(success=True))
        project, _, draft_id = await harness.seed_draft(session_factory)

        result = await harness.submitter.submit(session_factory, draft_id, "local")

        assert result.success is True
        assert result.message == "Changes applied locally"
        assert result.pr_url is None
        harness.materializer.ensure_working_copy.assert_not_awaited()
        harness.gh.create_pr.assert_not_awaited()
        assert (repo_dir / "README.md").read_text() == "teh widget\nteh gadget\n"

        draft, statuses = await harness.draft_and_statuses(session_factory, draft_id, project.id)
        assert draft.status == "submitted"
        assert draft.submit_method == "local"
        assert draft.submitted_at is not None
        assert set(statuses.values()) == {"included"}


class TestRefusals:
    @pytest.mark.parametrize("method", ["gh-cli", "local"])
    async def test_already_submitted(self, session_factory, repo_dir, method):
        harness = Harness(repo_dir, PRCreateResult(success=True, pr_url=PR_URL, pr_number=12))
        _, _, draft_id = await harness.seed_draft(session_factory)
        await harness.submitter.submit(session_factory, draft_id, "local")

        with pytest.raises(ValidationError, match="already submitted"):
            await harness.submitter.submit(session_factory, draft_id, method)

    async def test_unknown_method(self, session_factory, repo_dir):
        harness = Harness(repo_dir, PRCreateResult(success=True))
        _, _, draft_id = await harness.seed_draft(session_factory)

        with pytest.raises(ValidationError, match="invalid submit method"):
            await harness.submitter.submit(session_factory, draft_id, "email")
