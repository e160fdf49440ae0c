import os
import pathlib
import shutil
import sys
from datetime import datetime

import pytest
import reportlab
from PIL import Image

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from seminars.app import create_app, db
from seminars.models import Registration, Seminar, SeminarType, User


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords:
            continue
        item.add_marker("full")
        if "no_smoke" in item.keywords:
            continue
        item.add_marker("smoke")


class FakeLock:
    def __init__(self, store, name):
        self.store = store
        self.name = name

    def acquire(self):
        if self.name in self.store.held:
            return False
        self.store.held.add(self.name)
        self.store.acquired.append(self.name)
        return True

    def release(self):
        self.store.held.discard(self.name)


class FakeRedis:
    """The handful of redis-py calls the application makes, kept in dicts."""

    def __init__(self):
        self.values = {}
        self.ttls = {}
        self.lists = {}
        self.held = set()
        self.acquired = []

    def get(self, key):
        value = self.values.get(key)
        return value.encode() if isinstance(value, str) else value

    def set(self, key, value):
        self.values[key] = value

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            self.ttls.pop(key, None)
        return removed

    def rpush(self, name, *values):
        self.lists.setdefault(name, []).extend(values)
        return len(self.lists[name])

    def lrange(self, name, start, end):
        items = self.lists.get(name, [])
        return items[start:] if end == -1 else items[start : end + 1]

    def lock(self, name, timeout=None, blocking_timeout=None):
        return FakeLock(self, name)


def _build_assets(directory: pathlib.Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", (550, 405), (250, 246, 236, 255)).save(directory / "Border.png")
    Image.new("RGBA", (445, 135), (0, 0, 0, 0)).save(directory / "NameLine.png")
    Image.new("RGBA", (120, 160), (196, 160, 60, 255)).save(directory / "Medal.png")
    Image.new("RGBA", (70, 48), (120, 120, 120, 80)).save(directory / "Watermark.png")
    vera = pathlib.Path(reportlab.__file__).parent / "fonts" / "Vera.ttf"
    for name in ("script.ttf", "body-light.otf", "body-regular.otf"):
        shutil.copyfile(vera, directory / name)


@pytest.fixture
def app(tmp_path, monkeypatch):
    assets = tmp_path / "assets"
    _build_assets(assets)
    site_root = tmp_path / "site"
    site_root.mkdir()
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("SITE_ROOT", str(site_root))
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("CELERY_ALWAYS_EAGER", "1")
    monkeypatch.setenv("CERTIFICATE_STORAGE", "local")
    monkeypatch.setenv("CERTIFICATE_ASSETS_DIR", str(assets))
    monkeypatch.setenv("APP_BASE_URL", "https://seminars.example.org")
    for name in ("SMTP_HOST", "SMTP_PORT", "SMTP_FROM_DEFAULT"):
        monkeypatch.delenv(name, raising=False)
    application = create_app()
    application.extensions["redis"] = FakeRedis()
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_redis(app):
    return app.extensions["redis"]


@pytest.fixture
def sent_mail(monkeypatch):
    calls = []

    def fake_send(recipients, subject, body, html=None, attachments=()):
        calls.append(
            {
                "to": recipients,
                "subject": subject,
                "body": body,
                "html": html,
                "attachments": list(attachments),
            }
        )
        return {"ok": True, "detail": "sent"}

    monkeypatch.setattr("seminars.emailer.send", fake_send)
    return calls


@pytest.fixture
def make_registration(app):
    counter = {"n": 0}

    def _make(
        present=True,
        name="MARY O'BRIEN",
        email=None,
        seminar=None,
        code=None,
        sent=False,
    ):
        counter["n"] += 1
        n = counter["n"]
        if seminar is None:
            seminar_type = SeminarType(name="Seminar")
            seminar = Seminar(
                name=f"Data Pipelines in Practice {n}",
                slug=f"data-pipelines-{n}",
                scheduled_at=datetime(2024, 3, 14, 19, 30),
                seminar_type=seminar_type,
            )
            db.session.add(seminar)
        user = User(name=name, email=email or f"person{n}@example.com")
        registration = Registration(
            seminar=seminar,
            user=user,
            present=present,
            certificate_code=code,
            certificate_sent=sent,
        )
        db.session.add_all([user, registration])
        db.session.commit()
        return registration

    return _make
