"""
tests/test_config.py -- SECRET_KEY policy enforced by Settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_production_requires_secret_key() -> None:
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, debug=False, secret_key="too-short")


def test_debug_generates_key() -> None:
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_defaults() -> None:
    settings = Settings(_env_file=None, debug=True)
    assert settings.token_expire_seconds == 3600
    assert settings.min_password_length == 8
    assert settings.cloudinary_folder == "craterra"
