"""Typo checker engine — spell-check a source tree with typos-cli."""

from repopolisher.engines.typo_checker.checker import TypoChecker, parse_typos_output

__all__ = ["TypoChecker", "parse_typos_output"]
