"""
Script patcher — ordered literal rewrites over a copied shell script.

The validation script shipped inside the repository assumes it runs from
the repository root. We run it from the work directory one level up, so
its relative paths are re-rooted under the repository directory and its
"next steps" footer is renumbered.

Rules are applied as a fold: each rule sees the output of the previous
one. Order matters. ``source venv/bin/activate`` is re-rooted before the
footer rule for ``1. source venv/bin/activate`` runs, so that footer rule
never matches scripts written for this ordering. Do not reorder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class PatchSourceError(Exception):
    """Raised when the script to patch does not exist."""


@dataclass(frozen=True)
class RewriteRule:
    """One literal rewrite.

    Attributes:
        pattern:       Literal text to find (no regex, no globbing).
        replacement:   Text substituted for every occurrence, or the line
                       inserted when *insert_after* is set.
        insert_after:  Insert *replacement* as a new line after every line
                       containing *pattern* instead of substituting.
    """

    pattern: str
    replacement: str
    insert_after: bool = False

    def apply(self, text: str) -> str:
        if self.insert_after:
            return _insert_after(text, self.pattern, self.replacement)
        return text.replace(self.pattern, self.replacement)


def _insert_after(text: str, anchor: str, line: str) -> str:
    out: list[str] = []
    for current in text.splitlines(keepends=True):
        if anchor in current:
            if not current.endswith("\n"):
                current += "\n"
            out.append(current)
            out.append(line + "\n")
        else:
            out.append(current)
    return "".join(out)


def apply_rules(text: str, rules: list[RewriteRule]) -> str:
    """Apply *rules* to *text* in order. A rule that matches nothing is a no-op."""
    for rule in rules:
        text = rule.apply(text)
    return text


def patch(source: Path, rules: list[RewriteRule]) -> str:
    """Read *source* and return it with *rules* applied.

    Raises:
        PatchSourceError: If *source* is not a file.
    """
    if not source.is_file():
        raise PatchSourceError(f"Script to patch not found: {source}")
    text = source.read_text(encoding="utf-8")
    patched = apply_rules(text, rules)
    logger.debug("Patched %s with %d rules (%s)", source, len(rules),
                 "changed" if patched != text else "unchanged")
    return patched


def validation_script_rules(repo_dir: str) -> list[RewriteRule]:
    """Rules that make the repository's validate_setup.sh runnable from
    the directory containing *repo_dir*."""
    r = repo_dir
    return [
        # Token file lives in the work directory already
        RewriteRule('if [ -f ".github_token" ]', 'if [ -f ".github_token" ]'),
        # Re-root repository-relative paths
        RewriteRule('if [ -d ".git" ]', f'if [ -d "{r}/.git" ]'),
        RewriteRule('if [ -d "venv" ]', f'if [ -d "{r}/venv" ]'),
        RewriteRule("source venv/bin/activate", f"source {r}/venv/bin/activate"),
        RewriteRule('if [ -d "$dir" ]', f'if [ -d "{r}/$dir" ]'),
        RewriteRule('if [ -f "$file" ]', f'if [ -f "{r}/$file" ]'),
        RewriteRule('if [ -d "data/kernels" ]', f'if [ -d "{r}/data/kernels" ]'),
        RewriteRule(
            'if [ -f "data/kernels/metakernel.tm" ]',
            f'if [ -f "{r}/data/kernels/metakernel.tm" ]',
        ),
        RewriteRule('if [ -d "data/models" ]', f'if [ -d "{r}/data/models" ]'),
        # Renumber the next-steps footer
        RewriteRule("1. source venv/bin/activate", f"1. cd {r}"),
        RewriteRule("2. claude", "2. source venv/bin/activate"),
        RewriteRule("3. Tell Claude", "3. claude"),
        RewriteRule(
            "3. claude",
            '    echo "  4. Tell Claude to read CLAUDE_CONTEXT.md and docs/PRD.md"',
            insert_after=True,
        ),
    ]
