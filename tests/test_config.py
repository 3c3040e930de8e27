"""Tests for settings, logging setup and service wiring."""

import logging

import pytest

from kitabghar.config import Settings
from kitabghar.logging_utils import setup_logging
from kitabghar.notifications.dispatcher import EdgeFunctionDispatcher, LogOnlyDispatcher
from kitabghar.records.store import JsonRecordStore
from kitabghar.records.supabase import SupabaseRecordStore
from kitabghar.services import build_dispatcher, build_services, build_store


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("KITABGHAR_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("KITABGHAR_TRACK_INVENTORY", "yes")
    monkeypatch.setenv("KITABGHAR_TRANSITION_POLICY", "strict")
    monkeypatch.setenv("SUPABASE_URL", "https://club.supabase.co/")
    monkeypatch.delenv("SUPABASE_KEY", raising=False)

    settings = Settings.from_env()

    assert settings.data_dir == tmp_path
    assert settings.track_inventory is True
    assert settings.transition_policy == "strict"
    assert settings.supabase_url == "https://club.supabase.co"
    assert not settings.hosted_functions_enabled
    assert settings.store_dir == tmp_path / "store"


def test_build_store_and_dispatcher(tmp_path):
    settings = Settings(data_dir=tmp_path)
    assert isinstance(build_store(settings), JsonRecordStore)
    assert isinstance(build_dispatcher(settings), LogOnlyDispatcher)

    hosted = Settings(data_dir=tmp_path, store_backend="supabase", supabase_url="https://x.co", supabase_key="k")
    assert isinstance(build_store(hosted), SupabaseRecordStore)
    assert isinstance(build_dispatcher(hosted), EdgeFunctionDispatcher)

    with pytest.raises(ValueError):
        build_store(Settings(data_dir=tmp_path, store_backend="supabase"))
    with pytest.raises(ValueError):
        build_store(Settings(data_dir=tmp_path, store_backend="sqlite"))


def test_build_services_wires_inventory(tmp_path):
    services = build_services(Settings(data_dir=tmp_path, track_inventory=True, transition_policy="strict"))
    assert services.workflow.inventory is not None
    assert services.workflow.policy.name == "strict"
    assert services.ip_lookup is None


def test_setup_logging_from_yaml(tmp_path):
    config = tmp_path / "logging.yaml"
    config.write_text(
        "version: 1\n"
        "disable_existing_loggers: false\n"
        "loggers:\n"
        "  kitabghar.test:\n"
        "    level: WARNING\n"
    )
    setup_logging("DEBUG", str(config))
    assert logging.getLogger("kitabghar.test").level == logging.WARNING


def test_setup_logging_with_missing_file(tmp_path, caplog):
    setup_logging("INFO", str(tmp_path / "missing.yaml"))
    assert "not found" in caplog.text
