from __future__ import annotations

import json
from pathlib import Path

import pytest

from missionforge.failures import ConfigurationError
from missionforge.identity import load_identity, parse_identity

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def test_load_shipped_identity():
    identity = load_identity(CONFIG_DIR / "switch.json")
    assert identity.name == "Switch"
    assert identity.error_recovery.max_retries == 3
    assert identity.worker_system_prompt == identity.worker_prompt


def test_worker_prompt_falls_back_to_system_prompt():
    identity = parse_identity(
        {"name": "n", "description": "d", "systemPrompt": "sys", "promptTemplate": "tpl"}
    )
    assert identity.worker_system_prompt == "sys"
    assert identity.error_recovery.fallback_strategy


def test_missing_fields_raise_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_identity({"name": "n"})


def test_missing_file_raises_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_identity(tmp_path / "absent.json")


def test_error_recovery_keys_are_camel_case(tmp_path):
    path = tmp_path / "identity.json"
    path.write_text(
        json.dumps(
            {
                "name": "n",
                "description": "d",
                "systemPrompt": "s",
                "promptTemplate": "p",
                "errorRecovery": {"maxRetries": 0, "fallbackStrategy": "stop"},
            }
        ),
        encoding="utf-8",
    )
    identity = load_identity(path)
    assert identity.error_recovery.max_retries == 0
    assert identity.error_recovery.fallback_strategy == "stop"
