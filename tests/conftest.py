# tests/conftest.py
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RENDER_ON_STARTUP"] = "false"
os.environ["DAILY_RENDER_ENABLED"] = "false"
os.environ.setdefault("WALLPAPER_DIR", tempfile.mkdtemp(prefix="pi-canvas-test-"))
os.environ["RENDER_RESOLUTIONS"] = json.dumps({"portrait": [90, 160], "landscape": [160, 90]})
os.environ["LATEST_RESOLUTION"] = "portrait"

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pi_canvas.core.security import create_access_token
from pi_canvas.db.session import Base, create_db_engine
from pi_canvas.db.session import get_db as app_get_session
from pi_canvas.main import app as fastapi_app
from pi_canvas.services.allocator import Allocator
from pi_canvas.services.container import PiServices
from pi_canvas.services.digits import DigitSource
from pi_canvas.services.publisher import WallpaperPublisher
from pi_canvas.services.render_service import RenderService
from pi_canvas.services.renderer import SequenceRenderer
from pi_canvas.services.timeline import TimelineProjector

TEST_DB_URL = "sqlite://"
DIGITS_FILE = Path(__file__).resolve().parents[1] / "data" / "pi-digits.txt"
PI_PREFIX = "3.14159265358979323846264338327950288"
TEST_RESOLUTIONS = {"portrait": (90, 160), "landscape": (160, 90)}


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_db_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def digit_source() -> DigitSource:
    """A short, known prefix of pi so out-of-range lookups are easy to reach."""
    return DigitSource.from_text(PI_PREFIX)


@pytest.fixture()
def publisher(tmp_path: Path) -> WallpaperPublisher:
    return WallpaperPublisher(tmp_path / "wallpapers", "/wallpapers")


@pytest.fixture()
def render_service(digit_source: DigitSource, publisher: WallpaperPublisher) -> RenderService:
    return RenderService(
        SequenceRenderer(digit_source, TEST_RESOLUTIONS),
        publisher,
        latest_resolution="portrait",
    )


@pytest.fixture()
def services(digit_source: DigitSource, render_service: RenderService) -> PiServices:
    return PiServices(
        digit_source=digit_source,
        allocator=Allocator(digit_source, render_service),
        render_service=render_service,
        timeline=TimelineProjector(digit_source),
    )


@pytest.fixture()
def app(services: PiServices, db_session: Session) -> Iterator[FastAPI]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    fastapi_app.dependency_overrides[app_get_session] = _get_session_override
    fastapi_app.state.services = services
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.pop(app_get_session, None)
        fastapi_app.state.services = None


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    """Return a factory building bearer headers for a participant."""

    def _headers(participant_id: str, *, name: str | None = None, handle: str | None = None) -> dict[str, str]:
        token = create_access_token(participant_id, name=name, handle=handle)
        return {"Authorization": f"Bearer {token}"}

    return _headers
