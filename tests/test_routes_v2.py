import hashlib

CONTENT = b"z" * 2048
HASH = hashlib.sha256(CONTENT).hexdigest()
TOKEN = {"x-auth-token": "secret-token"}


def _create_large(client, **extra):
    body = {"file_size": len(CONTENT), "file_hash": HASH, "title": "big.bin"}
    body.update(extra)
    r = client.post("/v2/create", json=body)
    assert r.status_code == 200, r.text
    return r.json()["upload"]


def _create_paste(client, **data):
    return client.post("/?json=1", data={"u": "hello", **data}).json()


# -------------------------
# Info
# -------------------------
def test_get_info_envelope(client):
    paste = _create_paste(client)

    r = client.get(f"/v2/info/{paste['uuid']}")

    assert r.status_code == 200
    body = r.json()
    assert body["status_code"] == 200
    assert body["info"]["uuid"] == paste["uuid"]
    assert body["info"]["has_password"] is False
    assert body["info"]["link_qr"].startswith("https://qrcode.nekoid.cc/?q=")


def test_info_errors_are_json(client):
    missing = client.get("/v2/info/zzzz")
    assert missing.status_code == 404
    assert missing.json() == {"status_code": 404, "error": "Paste not found."}

    invalid = client.get("/v2/info/abc")
    assert invalid.status_code == 442
    assert invalid.json()["error"] == "Invalid UUID."


def test_update_info(client):
    paste = _create_paste(client)

    r = client.post(f"/v2/info/{paste['uuid']}", json={"title": "renamed.txt", "max_access_n": 4})

    info = r.json()["info"]
    assert info["title"] == "renamed.txt"
    assert info["max_access_n"] == 4
    assert info["mime_type"] == "text/plain; charset=UTF-8"


def test_update_info_requires_password(client):
    paste = _create_paste(client, **{"pass": "abc123"})

    r = client.post(f"/v2/info/{paste['uuid']}", json={"password": None})
    assert r.status_code == 401
    assert "www-authenticate" not in r.headers

    ok = client.post(f"/v2/info/{paste['uuid']}", json={"password": None}, headers={"x-pass": "abc123"})
    assert ok.status_code == 200
    assert ok.json()["info"]["has_password"] is False


def test_update_info_rejects_immutable_fields(client):
    paste = _create_paste(client)

    r = client.post(f"/v2/info/{paste['uuid']}", json={"file_size": 1})

    assert r.status_code == 400
    assert r.json() == {"status_code": 400, "error": "Invalid request fields."}


# -------------------------
# Large upload handshake
# -------------------------
def test_large_upload_handshake(client, object_store):
    upload = _create_large(client)
    uuid = upload["uuid"]
    assert upload["request_headers"]["Content-Length"] == "2048"
    assert client.get(f"/v2/info/{uuid}").json()["info"]["upload_pending"] is True

    early = client.post(f"/v2/complete/{uuid}")
    assert early.status_code == 422
    assert early.json() == {"status_code": 422, "error": "This paste is not finishing upload. (0 != 2048)"}

    # client PUT naar de presigned URL
    object_store.put(uuid, CONTENT)
    done = client.post(f"/v2/complete/{uuid}")
    assert done.status_code == 200
    assert done.json()["info"]["upload_pending"] is None

    again = client.post(f"/v2/complete/{uuid}")
    assert again.status_code == 409

    assert client.get(f"/{uuid}").content == CONTENT


def test_pending_paste_not_readable(client):
    upload = _create_large(client)

    r = client.get(f"/{upload['uuid']}")

    assert r.status_code == 409
    assert r.text == "This paste is not yet finalized.\n"


def test_large_download_link(client, object_store):
    uuid = _create_large(client)["uuid"]
    object_store.put(uuid, CONTENT)
    client.post(f"/v2/complete/{uuid}")

    r = client.get(f"/v2/large_upload/{uuid}")

    download = r.json()["download"]
    assert download["uuid"] == uuid
    assert download["signed_url"].startswith(f"https://s3.test/pastes/{uuid}")
    assert download["expire"].endswith("Z")
    assert client.get(f"/v2/info/{uuid}").json()["info"]["access_n"] == 1


def test_large_download_link_for_normal_paste(client):
    paste = _create_paste(client)

    r = client.get(f"/v2/large_upload/{paste['uuid']}")

    assert r.status_code == 409
    assert r.json()["error"] == "Invalid operation."


def test_create_rejects_unknown_fields(client):
    r = client.post("/v2/create", json={"file_size": 1, "file_hash": HASH, "color": "red"})

    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request fields."


def test_create_rejects_non_hex_hash(client):
    r = client.post("/v2/create", json={"file_size": 1, "file_hash": "z" * 64})

    assert r.status_code == 422
    assert r.json()["error"] == "Invalid file-sha256-hash, expecting a SHA256 hex."


def test_create_rejects_oversized(client):
    r = client.post("/v2/create", json={"file_size": 2 * 1024**3, "file_hash": HASH})

    assert r.status_code == 422
    assert r.json()["error"].startswith("Paste size must be under")


# -------------------------
# Runtime config
# -------------------------
def test_config_requires_token(client):
    r = client.get("/v2/config")

    assert r.status_code == 404
    assert r.json() == {"status_code": 404, "error": "Invalid endpoint."}
    assert client.get("/v2/config", headers={"x-auth-token": "nope"}).status_code == 404


def test_config_is_redacted(client):
    r = client.get("/v2/config", headers=TOKEN)

    config = r.json()["config"]
    assert config["config_auth_token"] == "***"
    assert {s["secret_access_key"] for s in config["storages"]} == {"***"}
    assert [s["name"] for s in config["storages"]] == ["default", "large", "tiny"]


def test_config_update(client, config, fake_redis):
    payload = config.model_dump()
    payload["uuid_length"] = 6

    r = client.post("/v2/config", json=payload, headers=TOKEN)

    assert r.status_code == 200
    assert r.json()["config"]["uuid_length"] == 6
    assert '"uuid_length":6' in fake_redis.data["service:config"]


def test_config_update_rejects_invalid(client, fake_redis):
    r = client.post("/v2/config", json={"storages": []}, headers=TOKEN)

    assert r.status_code == 422
    assert r.json()["error"] == "Invalid config."
    assert fake_redis.data == {}
