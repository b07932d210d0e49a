import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from libshare.api.middleware import install_middleware


def _app():
    app = FastAPI()
    install_middleware(app)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    return app


def test_unhandled_error_becomes_500_and_server_keeps_serving():
    client = TestClient(_app())

    response = client.get("/boom")
    assert response.status_code == 500
    assert response.text == "Internal server error"

    assert client.get("/ok").json() == {"ok": True}


def test_requests_are_access_logged(caplog):
    caplog.set_level(logging.INFO, logger="libshare.access")
    client = TestClient(_app())

    client.get("/ok")
    client.get("/boom")

    lines = [r.getMessage() for r in caplog.records if r.name == "libshare.access"]
    assert len(lines) == 2
    assert "method=GET" in lines[0] and "url=/ok" in lines[0] and "status=200" in lines[0]
    assert "url=/boom" in lines[1] and "status=500" in lines[1]
