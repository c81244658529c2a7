"""Tests: Firebase initialization without real credentials."""

import json
from unittest.mock import patch

import pytest

from notifier.core import firebase
from notifier.core.config import settings


@pytest.fixture(autouse=True)
def no_credentials(monkeypatch):
    monkeypatch.setattr(settings, "FIREBASE_CREDENTIALS_JSON", None)
    monkeypatch.setattr(settings, "FIREBASE_CREDENTIALS_PATH", None)
    monkeypatch.setattr(firebase, "firebase_app", None)


def test_missing_credentials_raise():
    with pytest.raises(ValueError, match="not configured"):
        firebase.load_credentials()


def test_inline_json_wins_over_path():
    with patch("notifier.core.firebase.credentials.Certificate") as certificate:
        firebase.load_credentials(credentials_json=json.dumps({"project_id": "p"}), credentials_path="/nope")

    certificate.assert_called_once_with({"project_id": "p"})


def test_initialize_without_credentials_returns_none():
    assert firebase.initialize_firebase() is None


def test_initialize_happens_once():
    app = object()
    with patch("notifier.core.firebase.load_credentials"), \
            patch("notifier.core.firebase.firebase_admin.initialize_app", return_value=app) as init:
        assert firebase.initialize_firebase() is app
        assert firebase.initialize_firebase() is app

    init.assert_called_once()
