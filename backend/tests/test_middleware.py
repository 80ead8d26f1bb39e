from sitescope.core.middleware.security_headers import security_headers


def test_security_headers_skip_csp_for_docs():
    assert "Content-Security-Policy" in security_headers("/health", production=False)
    assert "Content-Security-Policy" not in security_headers("/api-docs", production=False)
    assert "Content-Security-Policy" not in security_headers("/openapi.json", production=False)


def test_security_headers_add_hsts_only_in_production():
    assert "Strict-Transport-Security" not in security_headers("/", production=False)
    assert security_headers("/", production=True)["Strict-Transport-Security"].startswith("max-age=")


def test_chunked_body_over_limit_is_rejected(make_client):
    client = make_client(max_request_body_bytes=16)

    response = client.post(
        "/api/demo/users",
        content=iter([b'{"name": "Ada Lovelace", ', b'"email": "a@b.co", "age": 40}']),
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 413
    body = response.json()
    assert body["error"] == "Error"
    assert body["message"] == "Payload too large"
    assert response.headers["X-Request-ID"]


def test_chunked_body_under_limit_reaches_route(client):
    response = client.post(
        "/api/demo/users",
        content=iter([b'{"name": "Ada Lovelace", ', b'"email": "a@b.co", "age": 40}']),
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 201
    assert response.json()["data"]["email"] == "a@b.co"


def test_cors_exposes_correlation_and_quota_headers(client):
    response = client.get("/health", headers={"Origin": "https://example.com"})

    assert response.headers["access-control-allow-origin"] == "*"
    exposed = response.headers["access-control-expose-headers"]
    assert "X-Request-ID" in exposed
    assert "RateLimit-Remaining" in exposed
