import logging

import pytest

from quill_toolkit.config import ConfigManager
from quill_toolkit.logging_config import setup_logging


@pytest.fixture
def user_config(tmp_path):
    """Return a factory writing user override files, then a fresh manager."""
    directory = tmp_path / "overrides"
    directory.mkdir()

    def _make(files):
        for name, content in files.items():
            (directory / name).write_text(content, encoding="utf-8")
        ConfigManager._instance = None
        return ConfigManager(user_config_dir=directory)
    return _make


@pytest.fixture
def restore_logging():
    """Undo global logging changes made by setup_logging."""
    names = [
        "",
        "quill_toolkit",
        "quill_toolkit.core.converter.image_resolver",
        "quill_toolkit.core.parser.docx_utils",
    ]
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


class TestConfigManager:
    """Packaged defaults merged with user overrides."""

    def test_packaged_defaults(self, isolated_config):
        export = isolated_config.get_export_defaults()
        assert export["font_size"] == 24
        assert export["page_size"] == "letter"
        assert export["chars_per_page"] == 3000
        assert "First Paragraph" in isolated_config.get_style_map()["aliases"]

    def test_singleton(self, isolated_config):
        assert ConfigManager() is isolated_config

    def test_user_override(self, user_config):
        manager = user_config({"export_defaults.yml": "font_size: 22\n"})
        export = manager.get_export_defaults()
        assert export["font_size"] == 22
        assert export["page_size"] == "letter"

    def test_invalid_user_file_ignored(self, user_config):
        manager = user_config({"export_defaults.yml": "font_size: [unclosed\n"})
        assert manager.get_export_defaults()["font_size"] == 24

    def test_user_aliases_extend_packaged_ones(self, user_config):
        manager = user_config({"default_style_map.yml": "aliases:\n  Chapter Opening: p.first-paragraph\n"})
        aliases = manager.get_style_map()["aliases"]
        assert aliases["Chapter Opening"] == "p.first-paragraph"
        assert "First Paragraph" in aliases

    def test_logging_config_is_a_copy(self, isolated_config):
        config = isolated_config.get_logging_config()
        config["handlers"].clear()
        assert isolated_config.get_logging_config()["handlers"]


class TestSetupLogging:
    def test_file_handler_and_level_override(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.setenv("QUILL_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setenv("QUILL_LOG_LEVEL", "warning")
        setup_logging()
        assert (tmp_path / "logs" / "quill.log").exists()
        assert logging.getLogger("quill_toolkit").level == logging.WARNING

    def test_debug_images_override(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.setenv("QUILL_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setenv("QUILL_DEBUG_IMAGES", "true")
        setup_logging()
        images = logging.getLogger("quill_toolkit.core.converter.image_resolver")
        assert images.level == logging.DEBUG
