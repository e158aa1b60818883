"""Tests for the config_loader module."""

import pytest

from source_pack.config import DEFAULT_IGNORE_EXTS, OutputFormat, OutputMode
from source_pack.config_loader import (
    ProjectConfig,
    find_config_file,
    load_config,
    merge_cli_with_config,
)
from source_pack.errors import ConfigError


class TestFindConfigFile:
    """Tests for config file discovery."""
    
    def test_none_found(self, tmp_path):
        """Test that a directory without config files yields None."""
        assert find_config_file(tmp_path) is None
    
    def test_toml_preferred(self, tmp_path):
        """Test the search order when several files exist."""
        (tmp_path / "source-pack.yml").write_text("compress: true\n")
        (tmp_path / ".source-pack.toml").write_text("compress = true\n")
        
        assert find_config_file(tmp_path) == tmp_path / ".source-pack.toml"
    
    def test_yaml_variant(self, tmp_path):
        """Test discovery of a .yaml file."""
        (tmp_path / ".source-pack.yaml").write_text("compress: true\n")
        
        assert find_config_file(tmp_path) == tmp_path / ".source-pack.yaml"


class TestLoadConfig:
    """Tests for loading config files."""
    
    def test_no_file(self, tmp_path):
        """Test that a missing config file yields empty defaults."""
        config = load_config(tmp_path)
        
        assert config == ProjectConfig()
        assert config.to_dict() == {}
    
    def test_toml_flat(self, tmp_path):
        """Test a flat TOML file."""
        (tmp_path / "source-pack.toml").write_text(
            'compress = true\n'
            'format = "XML"\n'
            'mode = "structure"\n'
            'ignore_exts = ["log", ".bak"]\n'
            'max_file_bytes = 1000\n'
        )
        
        config = load_config(tmp_path)
        
        assert config.compress is True
        assert config.format is OutputFormat.XML
        assert config.mode is OutputMode.STRUCTURE
        assert config.user_ignore_exts == frozenset({"log", ".bak"})
        assert config.max_file_bytes == 1000
        assert config.ignore_git is None
    
    def test_toml_section(self, tmp_path):
        """Test values under a [source-pack] table."""
        (tmp_path / "pyproject-like.toml").write_text(
            '[source-pack]\n'
            'ignore_build = false\n'
            'ignore_files = "local.properties, secret.key"\n'
        )
        
        config = load_config(tmp_path, tmp_path / "pyproject-like.toml")
        
        assert config.ignore_build is False
        assert config.user_ignore_files == frozenset({"local.properties", "secret.key"})
    
    def test_yaml(self, tmp_path):
        """Test a YAML file with the extension alias."""
        (tmp_path / "source-pack.yml").write_text(
            "ignore_gradle: false\n"
            "ignore_extensions:\n"
            "  - log\n"
            "  - tmp\n"
            "clone_timeout: 60\n"
        )
        
        config = load_config(tmp_path)
        
        assert config.ignore_gradle is False
        assert config.user_ignore_exts == frozenset({"log", "tmp"})
        assert config.clone_timeout == 60
    
    def test_empty_yaml(self, tmp_path):
        """Test that an empty YAML file sets nothing."""
        (tmp_path / "source-pack.yml").write_text("")
        
        assert load_config(tmp_path).to_dict() == {
            "_loaded_from": str(tmp_path / "source-pack.yml")
        }
    
    def test_unknown_keys_ignored(self, tmp_path):
        """Test that unrecognized keys are skipped."""
        (tmp_path / "source-pack.toml").write_text('colour = "blue"\ncompress = true\n')
        
        assert load_config(tmp_path).compress is True
    
    def test_explicit_missing_file(self, tmp_path):
        """Test that an explicit path that does not exist is an error."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path, tmp_path / "missing.toml")
    
    @pytest.mark.parametrize(
        "content",
        [
            'compress = "yes"\n',
            'max_file_bytes = "big"\n',
            'max_file_bytes = true\n',
            'format = "pdf"\n',
            'mode = "summary"\n',
            'ignore_files = [1, 2]\n',
            'ignore_exts = 3\n',
        ],
    )
    def test_wrong_types(self, tmp_path, content):
        """Test that wrongly-typed values raise ConfigError."""
        (tmp_path / "source-pack.toml").write_text(content)
        
        with pytest.raises(ConfigError):
            load_config(tmp_path)
    
    def test_unparsable_toml(self, tmp_path):
        """Test that TOML syntax errors raise ConfigError."""
        (tmp_path / "source-pack.toml").write_text("compress = = true\n")
        
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(tmp_path)
    
    def test_unparsable_yaml(self, tmp_path):
        """Test that YAML syntax errors raise ConfigError."""
        (tmp_path / "source-pack.yml").write_text("compress: [true\n")
        
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(tmp_path)
    
    def test_non_mapping(self, tmp_path):
        """Test that a YAML list at the top level is rejected."""
        (tmp_path / "source-pack.yml").write_text("- compress\n")
        
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)
    
    def test_unsupported_suffix(self, tmp_path):
        """Test that an explicit file of an unknown type is rejected."""
        path = tmp_path / "config.json"
        path.write_text("{}")
        
        with pytest.raises(ConfigError, match="Unsupported"):
            load_config(tmp_path, path)


class TestMergeCliWithConfig:
    """Tests for merging CLI values with file values."""
    
    def test_defaults(self):
        """Test the defaults when neither CLI nor file set anything."""
        config = merge_cli_with_config(ProjectConfig())
        
        assert config.compress is False
        assert config.ignore_git and config.ignore_build and config.ignore_gradle
        assert config.format is OutputFormat.MARKDOWN
        assert config.mode is OutputMode.FULL
        assert config.user_ignore_files == frozenset()
        assert config.user_ignore_exts == DEFAULT_IGNORE_EXTS
    
    def test_file_values_used(self):
        """Test that file values fill in unset CLI values."""
        file_config = ProjectConfig(compress=True, format=OutputFormat.XML)
        
        config = merge_cli_with_config(file_config)
        
        assert config.compress is True
        assert config.format is OutputFormat.XML
    
    def test_cli_wins(self):
        """Test that CLI values override file values."""
        file_config = ProjectConfig(
            compress=True,
            ignore_git=True,
            user_ignore_exts=frozenset({"bak"}),
        )
        
        config = merge_cli_with_config(
            file_config,
            compress=False,
            ignore_git=False,
            ignore_exts="log, .swp",
        )
        
        assert config.compress is False
        assert config.ignore_git is False
        assert config.user_ignore_exts == frozenset({"log", "swp"})
    
    def test_empty_cli_list_clears_default(self):
        """Test that an empty --ignore-exts disables the default extensions."""
        config = merge_cli_with_config(ProjectConfig(), ignore_exts="")
        
        assert config.user_ignore_exts == frozenset()
    
    def test_invalid_merged_value(self):
        """Test that invalid file values are caught when the config is built."""
        with pytest.raises(ConfigError):
            merge_cli_with_config(ProjectConfig(max_file_bytes=-1))
