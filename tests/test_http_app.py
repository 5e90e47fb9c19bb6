from pathlib import Path
import socket

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.di import build_container
from app.errors import StartupError
from server.http_app import bind_socket, create_app


@pytest.fixture
def root(tmp_path: Path) -> Path:
    r = tmp_path / "root"
    (r / "docs").mkdir(parents=True)
    (r / "docs" / "readme.txt").write_text("hello", encoding="utf-8")
    (r / "src" / "lib").mkdir(parents=True)
    return r


@pytest.fixture
def client(root: Path, tmp_path: Path) -> TestClient:
    settings = Settings(FILES_DIR=root, STATIC_DIR=tmp_path / "no-static")
    return TestClient(create_app(build_container(settings)))


def test_read_file(client: TestClient):
    resp = client.get("/api/read", params={"path": "/docs/readme.txt"})
    assert resp.status_code == 200
    assert resp.text == "hello"


def test_read_outside_root_is_forbidden(client: TestClient):
    resp = client.get("/api/read", params={"path": "/../etc/passwd"})
    assert resp.status_code == 403
    assert resp.text == "Forbidden: Access Denied"


def test_read_missing_path_is_bad_request(client: TestClient):
    resp = client.get("/api/read")
    assert resp.status_code == 400
    assert resp.text == "Bad Request: Missing path parameter"


def test_read_missing_file_is_server_error(client: TestClient):
    resp = client.get("/api/read", params={"path": "docs/nope.txt"})
    assert resp.status_code == 500
    assert resp.text == "Error reading file"


def test_save_then_read(client: TestClient, root: Path):
    resp = client.post("/api/save", json={"path": "/docs/new.txt", "content": "a/b\nc"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "File saved successfully"}
    assert (root / "docs" / "new.txt").read_bytes() == b"a/b\nc"
    assert client.get("/api/read", params={"path": "docs/new.txt"}).text == "a/b\nc"


def test_save_empty_content(client: TestClient, root: Path):
    assert client.post("/api/save", json={"path": "empty.txt", "content": ""}).status_code == 200
    assert (root / "empty.txt").read_text() == ""


@pytest.mark.parametrize("body", [{"content": "x"}, {"path": 5, "content": "x"}, ["path"]])
def test_save_bad_request(client: TestClient, body):
    resp = client.post("/api/save", json=body)
    assert resp.status_code == 400


def test_save_malformed_json(client: TestClient):
    resp = client.post("/api/save", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_save_outside_root_is_forbidden(client: TestClient, tmp_path: Path):
    resp = client.post("/api/save", json={"path": "..\\escape.txt", "content": "x"})
    assert resp.status_code == 403
    assert not (tmp_path / "escape.txt").exists()


def test_save_onto_directory_is_server_error(client: TestClient):
    resp = client.post("/api/save", json={"path": "docs", "content": "x"})
    assert resp.status_code == 500
    assert resp.text == "Error saving file"


def test_tree_json(client: TestClient):
    resp = client.post("/api/tree", json={"action": "dirList", "path": "", "hideDirs": ["docs"], "maxDepth": 5})
    assert resp.status_code == 200
    assert resp.json() == [
        {"path": "/root", "hasChildren": True},
        {"path": "/root/src", "hasChildren": True},
        {"path": "/root/src/lib", "hasChildren": False},
    ]


def test_tree_form_with_scalar_and_list_params(client: TestClient):
    resp = client.post(
        "/api/tree",
        data={"action": "dirList", "path": "/root/src", "hideDirs[]": ["lib", "tmp"], "maxDepth": "3"},
    )
    assert resp.status_code == 200
    assert resp.json() == [{"path": "/root/src", "hasChildren": False}]


def test_tree_query_defaults(client: TestClient):
    resp = client.get("/api/tree", params={"hideDirs": "src", "maxDepth": "0"})
    assert resp.json() == [{"path": "/root", "hasChildren": True}]


def test_tree_soft_failure_is_empty_list(client: TestClient):
    resp = client.post("/api/tree", json={"path": "../.."})
    assert resp.status_code == 200
    assert resp.json() == []


def test_tree_unknown_action(client: TestClient):
    resp = client.post("/api/tree", json={"action": "fileDelete"})
    assert resp.status_code == 400


def test_health(client: TestClient):
    assert client.get("/api/health").json() == {"status": "ok", "root": "root"}


def test_static_files_are_served(root: Path, tmp_path: Path):
    static = tmp_path / "public"
    static.mkdir()
    (static / "index.html").write_text("<h1>desk</h1>")
    app = create_app(build_container(Settings(FILES_DIR=root, STATIC_DIR=static)))
    with TestClient(app) as c:
        assert c.get("/").text == "<h1>desk</h1>"
        assert c.get("/api/read", params={"path": "docs/readme.txt"}).text == "hello"


def test_bind_socket_port_in_use():
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen(1)
    port = holder.getsockname()[1]
    try:
        with pytest.raises(StartupError, match="already in use"):
            bind_socket("127.0.0.1", port)
    finally:
        holder.close()


def test_bind_socket_other_failure():
    with pytest.raises(StartupError, match="Could not bind"):
        bind_socket("203.0.113.1", 0)


def test_bind_socket_ok():
    sock = bind_socket("127.0.0.1", 0)
    try:
        assert sock.getsockname()[1] > 0
    finally:
        sock.close()


def test_nul_byte_in_path_is_forbidden(client: TestClient, root: Path):
    resp = client.get("/api/read", params={"path": "docs\x00x"})
    assert resp.status_code == 403
    assert resp.text == "Forbidden: Access Denied"

    resp = client.post("/api/save", json={"path": "docs/a\x00b.txt", "content": "x"})
    assert resp.status_code == 403
    assert sorted(p.name for p in (root / "docs").iterdir()) == ["readme.txt"]


@pytest.mark.parametrize("start", ["docs\x00x", "a" * 300, "docs/" + "b" * 300])
def test_tree_malformed_start_is_empty_list(client: TestClient, start: str):
    resp = client.post("/api/tree", json={"path": start})
    assert resp.status_code == 200
    assert resp.json() == []


def test_read_over_long_name_is_server_error(client: TestClient):
    resp = client.get("/api/read", params={"path": "a" * 300})
    assert resp.status_code == 500
    assert resp.text == "Error reading file"
