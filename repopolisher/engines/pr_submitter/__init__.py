"""PR submitter engine — apply a draft's fixes and open the pull request."""

from repopolisher.engines.pr_submitter.submitter import PRSubmitter, SubmitResult

__all__ = ["PRSubmitter", "SubmitResult"]
