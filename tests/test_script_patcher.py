"""
Tests for the script patcher — ordered literal rewrites.
"""

from pathlib import Path

import pytest

from vmsetup.core.services.script_patcher import (
    PatchSourceError,
    RewriteRule,
    apply_rules,
    patch,
    validation_script_rules,
)


class TestRewriteRule:
    def test_literal_replace_all(self):
        rule = RewriteRule("venv", "LFG-S/venv")
        assert rule.apply("venv venv") == "LFG-S/venv LFG-S/venv"

    def test_pattern_is_not_a_regex(self):
        rule = RewriteRule('if [ -d "$dir" ]', 'if [ -d "repo/$dir" ]')
        assert rule.apply('    if [ -d "$dir" ]; then\n') == '    if [ -d "repo/$dir" ]; then\n'
        assert rule.apply("if . -d x") == "if . -d x"

    def test_replacement_backslashes_kept(self):
        rule = RewriteRule("X", r"a\1b")
        assert rule.apply("X") == r"a\1b"

    def test_insert_after_every_match(self):
        rule = RewriteRule("mark", "inserted", insert_after=True)
        text = "a mark\nb\nmark c\n"
        assert rule.apply(text) == "a mark\ninserted\nb\nmark c\ninserted\n"

    def test_insert_after_last_line_without_newline(self):
        rule = RewriteRule("end", "after", insert_after=True)
        assert rule.apply("start\nend") == "start\nend\nafter\n"

    def test_no_match_is_noop(self):
        text = "nothing to see\n"
        assert RewriteRule("absent", "x").apply(text) == text
        assert RewriteRule("absent", "x", insert_after=True).apply(text) == text


class TestApplyRules:
    def test_sequential_fold(self):
        rules = [RewriteRule("a", "b"), RewriteRule("b", "c")]
        assert apply_rules("a", rules) == "c"

    def test_empty_rules(self):
        assert apply_rules("text", []) == "text"


class TestPatch:
    def test_missing_source_raises(self, tmp_path: Path):
        with pytest.raises(PatchSourceError):
            patch(tmp_path / "nope.sh", validation_script_rules("LFG-S"))

    def test_reads_and_applies(self, tmp_path: Path):
        src = tmp_path / "s.sh"
        src.write_text('if [ -d "venv" ]; then\n')
        assert patch(src, validation_script_rules("proj")) == 'if [ -d "proj/venv" ]; then\n'


class TestValidationRules:
    def test_rule_count_and_slot(self):
        rules = validation_script_rules("my-repo")
        assert len(rules) == 13
        assert any("my-repo" in r.replacement for r in rules)
        assert not any("LFG-S" in r.replacement for r in rules)

    def test_token_check_untouched(self):
        line = 'if [ -f ".github_token" ]; then\n'
        assert apply_rules(line, validation_script_rules("LFG-S")) == line

    def test_source_activate_rerooted(self):
        out = apply_rules("    source venv/bin/activate\n", validation_script_rules("LFG-S"))
        assert out == "    source LFG-S/venv/bin/activate\n"

    def test_data_kernels_rerooted(self):
        out = apply_rules('if [ -d "data/kernels" ]; then\n', validation_script_rules("LFG-S"))
        assert out == 'if [ -d "LFG-S/data/kernels" ]; then\n'

    def test_metakernel_rerooted(self):
        out = apply_rules('if [ -f "data/kernels/metakernel.tm" ]; then\n', validation_script_rules("LFG-S"))
        assert out == 'if [ -f "LFG-S/data/kernels/metakernel.tm" ]; then\n'

    def test_fourth_step_inserted(self):
        text = 'echo "  3. Tell Claude to read the docs"\n'
        out = apply_rules(text, validation_script_rules("LFG-S"))
        assert out == (
            'echo "  3. claude to read the docs"\n'
            '    echo "  4. Tell Claude to read CLAUDE_CONTEXT.md and docs/PRD.md"\n'
        )

    def test_order_matters(self):
        """Swapping the path rewrite and the footer relabel changes the result."""
        text = 'echo "  1. source venv/bin/activate"\n'
        rules = validation_script_rules("LFG-S")
        path_idx = next(i for i, r in enumerate(rules) if r.pattern == "source venv/bin/activate")
        label_idx = next(i for i, r in enumerate(rules) if r.pattern == "1. source venv/bin/activate")
        assert path_idx < label_idx

        swapped = list(rules)
        swapped[path_idx], swapped[label_idx] = swapped[label_idx], swapped[path_idx]

        shipped = apply_rules(text, rules)
        reordered = apply_rules(text, swapped)
        assert shipped == 'echo "  1. source LFG-S/venv/bin/activate"\n'
        assert reordered == 'echo "  1. cd LFG-S"\n'
        assert shipped != reordered

    def test_fixture_byte_exact(self, fixtures_dir: Path):
        out = patch(fixtures_dir / "validate_setup.sh", validation_script_rules("LFG-S"))
        expected = (fixtures_dir / "validate_setup.expected.sh").read_text(encoding="utf-8")
        assert out == expected
