"""
Tests for configuration loading and validation.
"""

import textwrap
from pathlib import Path

import pytest
import yaml

from vmsetup.core.config.loader import ConfigError, dump_config, find_config_file, load_config
from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.services.generators.context_doc import generate_context_document
from vmsetup.core.use_cases.config_check import check_config


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content))
    return path


class TestDefaults:
    def test_lfgs_defaults(self):
        cfg = ProvisionConfig()
        assert cfg.project_name == "LFG-S"
        assert cfg.repository.directory == "LFG-S"
        assert cfg.repository.branch == "master"
        assert cfg.auth.token_file == ".github_token"
        assert cfg.cli.command == "claude"
        assert cfg.python.fallback_packages == ["numpy", "pandas", "matplotlib", "torch", "scikit-learn"]
        assert "build-essential" in cfg.system.packages
        assert cfg.execution.allow_root is False


class TestLoadConfig:
    def test_no_file_uses_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == ProvisionConfig()

    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "vmsetup.yml")

    def test_partial_override(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", """\
            project_name: Demo
            repository:
              url: https://github.com/acme/demo.git
              directory: demo
            execution:
              network_retries: 5
        """)
        cfg = load_config(path)
        assert cfg.project_name == "Demo"
        assert cfg.repository.directory == "demo"
        assert cfg.repository.branch == "master"
        assert cfg.execution.network_retries == 5
        assert cfg.execution.command_timeout == 1800

    def test_empty_file(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "")
        assert load_config(path) == ProvisionConfig()

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "repository: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_unknown_key_rejected(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", """\
            repository:
              urll: https://typo.example
        """)
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_wrong_type_rejected(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "execution:\n  command_timeout: forever\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_find_walks_up(self, tmp_path: Path):
        _write(tmp_path / "vmsetup.yml", "project_name: Up\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == (tmp_path / "vmsetup.yml").resolve()

    def test_dump_roundtrips(self, tmp_path: Path):
        cfg = ProvisionConfig(project_name="Dumped")
        path = tmp_path / "vmsetup.yml"
        path.write_text(dump_config(cfg))
        assert load_config(path) == cfg
        assert yaml.safe_load(dump_config(cfg))["project_name"] == "Dumped"


class TestConfigCheck:
    def test_defaults_valid_with_warnings(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = check_config()
        assert result.valid
        assert any("built-in defaults" in w for w in result.warnings)
        assert any("nvm_installer_sha256" in w for w in result.warnings)

    def test_invalid_file(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "bogus: true\n")
        result = check_config(path)
        assert not result.valid
        assert result.errors
        assert result.to_dict()["valid"] is False

    def test_ssh_remote_warns(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", """\
            repository:
              url: git@github.com:acme/demo.git
            cli:
              nvm_installer_sha256: "abc"
        """)
        result = check_config(path)
        assert result.valid
        assert any("http(s)" in w for w in result.warnings)
        assert not any("nvm_installer_sha256" in w for w in result.warnings)

    def test_missing_context_template_warns(self, tmp_path: Path):
        path = _write(tmp_path / "vmsetup.yml", "documents:\n  context_template: nope.md\n")
        result = check_config(path, workdir=tmp_path)
        assert any("context_template" in w for w in result.warnings)

    def test_context_template_resolved_like_run(self, tmp_path: Path):
        config_dir = tmp_path / "etc"
        workdir = tmp_path / "vm"
        config_dir.mkdir()
        workdir.mkdir()
        path = _write(config_dir / "vmsetup.yml", "documents:\n  context_template: ctx.md\n")
        (config_dir / "ctx.md").write_text("beside the config\n")

        result = check_config(path, workdir=workdir)
        assert any(str(workdir / "ctx.md") in w for w in result.warnings)

        (workdir / "ctx.md").write_text("# __PROJECT_NAME__\n")
        result = check_config(path, workdir=workdir)
        assert not any("context_template" in w for w in result.warnings)
        generated = generate_context_document(result.config, workdir)
        assert generated.content == "# LFG-S\n"
