import builtins
import importlib
import logging
import os
import sys
import types

import pytest


def _load_config():
    sys.modules.pop("siteaudit.config", None)
    return importlib.import_module("siteaudit.config")


@pytest.fixture(autouse=True)
def _fresh_config_module():
    yield
    # later imports see the real dotenv again
    sys.modules.pop("siteaudit.config", None)


def test_missing_dotenv_falls_back_to_environment(monkeypatch, caplog):
    real_import = builtins.__import__

    def no_dotenv(name, globals=None, locals=None, fromlist=(), level=0):
        if name == "dotenv" or name.startswith("dotenv."):
            raise ImportError(name)
        return real_import(name, globals, locals, fromlist, level)

    monkeypatch.setattr(builtins, "__import__", no_dotenv)
    monkeypatch.setenv("USER_AGENT", "AuditBot/2.0")
    caplog.set_level(logging.WARNING)

    cfg = _load_config()

    assert "python-dotenv not available" in caplog.text
    assert cfg.USER_AGENT == "AuditBot/2.0"


def test_env_file_that_fails_to_load_is_an_error(monkeypatch, tmp_path):
    tmp_path.joinpath(".env").write_text("USER_AGENT=FromFile")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(sys.modules, "dotenv", types.SimpleNamespace(load_dotenv=lambda: False))

    with pytest.raises(RuntimeError):
        _load_config()


def test_values_from_env_file_are_used(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SITEAUDIT_CHECKPOINT_EVERY", raising=False)

    def load_dotenv():
        monkeypatch.setenv("SITEAUDIT_CHECKPOINT_EVERY", "25")
        return True

    monkeypatch.setitem(sys.modules, "dotenv", types.SimpleNamespace(load_dotenv=load_dotenv))
    cfg = _load_config()

    assert cfg.get_int_env("SITEAUDIT_CHECKPOINT_EVERY", 10) == 25
    assert os.environ["SITEAUDIT_CHECKPOINT_EVERY"] == "25"


def test_typed_helpers_fall_back_on_bad_values(monkeypatch):
    cfg = _load_config()
    monkeypatch.setenv("SITEAUDIT_MAX_ATTEMPTS", "three")
    monkeypatch.setenv("SITEAUDIT_FLAG", "maybe")
    monkeypatch.setenv("SITEAUDIT_EMPTY", "")

    assert cfg.get_int_env("SITEAUDIT_MAX_ATTEMPTS", 3) == 3
    assert cfg.get_bool_env("SITEAUDIT_FLAG", True) is True
    assert cfg.get_str_env("SITEAUDIT_EMPTY", "fallback") == "fallback"
    assert cfg.get_optional_int_env("SITEAUDIT_EMPTY") is None


def test_bool_helper_accepts_common_spellings(monkeypatch):
    cfg = _load_config()
    monkeypatch.setenv("SITEAUDIT_FLAG", "Yes")
    assert cfg.get_bool_env("SITEAUDIT_FLAG", False) is True
    monkeypatch.setenv("SITEAUDIT_FLAG", "off")
    assert cfg.get_bool_env("SITEAUDIT_FLAG", True) is False
