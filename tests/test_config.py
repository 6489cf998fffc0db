from pathlib import Path

from widgetizer.config import CORE_WIDGETS_DIR, DEFAULT_CONFIG, load_config, resolve_core_widgets_dir, resolve_data_dir


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("WIDGETIZER_SERVER_URL", raising=False)
    config = load_config(tmp_path)
    assert config == DEFAULT_CONFIG
    assert resolve_data_dir(tmp_path, config) == tmp_path / "data"
    assert resolve_core_widgets_dir(tmp_path, config) == CORE_WIDGETS_DIR


def test_config_file_and_env_override(tmp_path, monkeypatch):
    (tmp_path / "widgetizer.yaml").write_text(
        "data_dir: /srv/widgetizer\nserver_url: http://example.test\ncore_widgets_dir: widgets\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("WIDGETIZER_SERVER_URL", raising=False)
    config = load_config(tmp_path)
    assert config["server_url"] == "http://example.test"
    assert config["export_version"] == ""
    assert resolve_data_dir(tmp_path, config) == Path("/srv/widgetizer")
    assert resolve_core_widgets_dir(tmp_path, config) == tmp_path / "widgets"

    monkeypatch.setenv("WIDGETIZER_SERVER_URL", "http://override.test")
    assert load_config(tmp_path)["server_url"] == "http://override.test"


def test_empty_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("WIDGETIZER_SERVER_URL", raising=False)
    (tmp_path / "widgetizer.yaml").write_text("", encoding="utf-8")
    assert load_config(tmp_path) == DEFAULT_CONFIG
