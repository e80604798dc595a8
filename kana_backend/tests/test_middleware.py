"""
中间件测试：请求大小限制、请求 ID、异常恢复
"""
import threading

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from kana_backend.config import DEFAULT_MAX_REQUEST_SIZE
from kana_backend.logs import RequestLogContext
from kana_backend.middleware import (
    REQUEST_ID_HEADER,
    AccessLogMiddleware,
    RecoveryMiddleware,
    RequestIdMiddleware,
    RequestSizeLimitMiddleware,
)


def _echo_app(max_size: int) -> FastAPI:
    app = FastAPI()

    @app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"size": len(body)}

    @app.get("/boom")
    def boom():
        raise RuntimeError("boom")

    @app.get("/rid")
    def rid(request: Request):
        return {"request_id": request.state.request_id}

    app.add_middleware(RequestSizeLimitMiddleware, max_size=max_size)
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(RequestIdMiddleware)
    return app


def test_default_limit_is_10mib():
    assert DEFAULT_MAX_REQUEST_SIZE == 10 * 1024 * 1024


def test_body_within_limit_passes():
    client = TestClient(_echo_app(16))
    r = client.post("/echo", content=b"x" * 16)
    assert r.status_code == 200
    assert r.json() == {"size": 16}


def test_declared_length_over_limit_rejected():
    client = TestClient(_echo_app(16))
    r = client.post("/echo", content=b"x" * 17)
    assert r.status_code == 413
    assert r.json() == {"error": "request body too large"}


def test_streamed_body_over_limit_rejected():
    client = TestClient(_echo_app(10))

    def chunks():
        yield b"x" * 6
        yield b"x" * 6

    r = client.post("/echo", content=chunks())
    assert r.status_code == 413
    assert r.json() == {"error": "request body too large"}


def test_streamed_body_within_limit_passes():
    client = TestClient(_echo_app(10))

    def chunks():
        yield b"x" * 4
        yield b"x" * 4

    r = client.post("/echo", content=chunks())
    assert r.status_code == 200
    assert r.json() == {"size": 8}


def test_oversized_body_rejected_by_service(client):
    r = client.post("/health", content=b"x" * (DEFAULT_MAX_REQUEST_SIZE + 1))
    assert r.status_code == 413
    assert r.json() == {"error": "request body too large"}


def test_request_id_generated_and_echoed():
    client = TestClient(_echo_app(16))
    r = client.get("/rid")
    rid = r.headers[REQUEST_ID_HEADER]
    assert rid
    assert r.json() == {"request_id": rid}


def test_request_id_reused():
    client = TestClient(_echo_app(16))
    r = client.get("/rid", headers={REQUEST_ID_HEADER: "abc-123"})
    assert r.headers[REQUEST_ID_HEADER] == "abc-123"
    assert r.json() == {"request_id": "abc-123"}


def test_recovery_returns_500():
    client = TestClient(_echo_app(16))
    r = client.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"error": "internal server error"}
    assert r.headers.get(REQUEST_ID_HEADER)


def test_access_log_write_runs_off_event_loop(monkeypatch):
    threads = {}

    def fake_write(self, status, err=None, db_path=None):
        threads["write"] = threading.get_ident()
        threads["status"] = status

    monkeypatch.setattr(RequestLogContext, "write", fake_write)

    app = FastAPI()

    @app.get("/ping")
    async def ping():
        threads["loop"] = threading.get_ident()
        return {"ok": True}

    app.add_middleware(AccessLogMiddleware)
    r = TestClient(app).get("/ping")
    assert r.status_code == 200
    assert threads["status"] == 200
    # 写入在线程池中执行，不阻塞事件循环线程
    assert threads["write"] != threads["loop"]
