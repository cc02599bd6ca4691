"""Fix applier engine — splice accepted typo corrections into a working copy."""

from repopolisher.engines.fix_applier.applier import FileChange, FixResult, apply_fixes

__all__ = ["FileChange", "FixResult", "apply_fixes"]
