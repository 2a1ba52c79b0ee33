from __future__ import annotations

from windshaft.host import HostResolver


def test_https_template_supports_single_origin():
    h = HostResolver(user_name="acme", url_template="https://{user}.example.com")
    assert h.use_https()
    assert h.supported_subdomains() == [""]


def test_http_template_supports_four_subdomains():
    h = HostResolver(user_name="acme", url_template="http://{user}.example.com")
    assert not h.use_https()
    assert h.supported_subdomains() == ["0", "1", "2", "3"]


def test_cdn_host_with_subhost():
    h = HostResolver(
        user_name="acme",
        url_template="http://{user}.example.com",
        cdn_url={"http": "cdn.example.com"},
    )
    assert h.host("1") == "http://1.cdn.example.com/acme"
    assert h.host() == "http://cdn.example.com/acme"
    assert h.host("") == "http://cdn.example.com/acme"


def test_without_cdn_host_template_is_used_and_subhost_ignored():
    h = HostResolver(user_name="acme", url_template="https://{user}.example.com")
    assert h.host("2") == "https://acme.example.com"


def test_cdn_is_picked_by_template_protocol():
    # Only an https CDN host is known but the template is http -> no CDN.
    h = HostResolver(
        user_name="acme",
        url_template="http://{user}.example.com",
        cdn_url={"https": "ssl.cdn.example.com"},
    )
    assert h.host("0") == "http://acme.example.com"

    h2 = HostResolver(
        user_name="acme",
        url_template="https://{user}.example.com",
        cdn_url={"http": "cdn.example.com", "https": "ssl.cdn.example.com"},
    )
    assert h2.host() == "https://ssl.cdn.example.com/acme"


def test_base_url_joins_host_api_path_and_layergroup(monkeypatch):
    monkeypatch.delenv("WINDSHAFT_MAPS_API_BASE_URL", raising=False)
    h = HostResolver(
        user_name="acme",
        url_template="http://{user}.example.com",
        cdn_url={"http": "cdn.example.com"},
    )
    assert h.base_url("lg-1", "3") == "http://3.cdn.example.com/acme/api/v1/map/lg-1"
    # Deterministic across calls.
    assert h.base_url("lg-1", "3") == h.base_url("lg-1", "3")


def test_base_url_honours_configured_api_path(monkeypatch):
    monkeypatch.setenv("WINDSHAFT_MAPS_API_BASE_URL", "/maps/v2/")
    h = HostResolver(user_name="acme", url_template="https://{user}.example.com")
    assert h.base_url("lg") == "https://acme.example.com/maps/v2/lg"


def test_instantiation_url_skips_cdn(monkeypatch):
    monkeypatch.delenv("WINDSHAFT_MAPS_API_BASE_URL", raising=False)
    h = HostResolver(
        user_name="acme",
        url_template="https://{user}.example.com",
        cdn_url={"https": "ssl.cdn.example.com"},
    )
    assert h.instantiation_url() == "https://acme.example.com/api/v1/map"


def test_tile_url_templates_one_per_subdomain(monkeypatch):
    monkeypatch.delenv("WINDSHAFT_MAPS_API_BASE_URL", raising=False)
    h = HostResolver(
        user_name="acme",
        url_template="http://{user}.example.com",
        cdn_url={"http": "cdn.example.com"},
    )
    tiles = h.tile_url_templates("lg", [0, 2])
    assert tiles == [
        f"http://{s}.cdn.example.com/acme/api/v1/map/lg/0,2/{{z}}/{{x}}/{{y}}.png"
        for s in ["0", "1", "2", "3"]
    ]

    https = HostResolver(user_name="acme", url_template="https://{user}.example.com")
    assert https.tile_url_templates("lg", [], fmt="mvt") == [
        "https://acme.example.com/api/v1/map/lg/{z}/{x}/{y}.mvt"
    ]
