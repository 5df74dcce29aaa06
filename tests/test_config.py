from pathlib import Path

from edu_content.core.config_manager import load_config


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "nope.yaml"))
    assert config.navigation.max_depth == 32
    assert config.authoring.max_tree_depth == 4
    assert config.authoring.allow_mixed_nodes is True
    assert config.logging.level == "INFO"


def test_yaml_overrides_env_and_paths(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "config.yaml"
    config_file.write_text(
        "storage:\n"
        "  sqlite_path: ./data/content.db\n"
        "logging:\n"
        "  level: ${EDU_LOG_LEVEL}\n"
        "authoring:\n"
        "  allow_mixed_nodes: true\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("EDU_LOG_LEVEL", "DEBUG")

    config = load_config(str(config_file), overrides={"authoring": {"allow_mixed_nodes": False}})

    assert config.logging.level == "DEBUG"
    assert config.authoring.allow_mixed_nodes is False
    assert config.authoring.max_tree_depth == 4
    assert Path(config.storage.sqlite_path) == (tmp_path / "data" / "content.db").resolve()
