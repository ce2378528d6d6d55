"""Fingerprint Tests"""

import httpx

from replaywire.replay.fingerprint import base_name, chain_key, fingerprint


def strip_query(request: httpx.Request) -> httpx.Request:
    return httpx.Request(request.method, request.url.copy_remove_param("ts"), content=request.content)


class TestFingerprint:
    def test_deterministic(self):
        first = httpx.Request("POST", "https://api.example.com/search", json={"q": "ai"})
        second = httpx.Request("POST", "https://api.example.com/search", json={"q": "ai"})

        assert fingerprint(first) == fingerprint(first)
        assert fingerprint(first) == fingerprint(second)

    def test_method_url_and_body_matter(self):
        base = httpx.Request("POST", "https://api.example.com/search", json={"q": "ai"})
        other_body = httpx.Request("POST", "https://api.example.com/search", json={"q": "ml"})
        other_method = httpx.Request("PUT", "https://api.example.com/search", json={"q": "ai"})
        other_url = httpx.Request("POST", "https://api.example.com/find", json={"q": "ai"})

        prints = {fingerprint(r) for r in (base, other_body, other_method, other_url)}
        assert len(prints) == 4

    def test_hash_length(self):
        request = httpx.Request("GET", "https://api.example.com/")
        value = fingerprint(request)
        assert len(value) == 16
        int(value, 16)

    def test_normalizer_merges_requests(self):
        first = httpx.Request("GET", "https://api.example.com/items?ts=1")
        second = httpx.Request("GET", "https://api.example.com/items?ts=2")

        assert fingerprint(first) != fingerprint(second)
        assert fingerprint(first, strip_query) == fingerprint(second, strip_query)

    def test_headers_ignored(self):
        first = httpx.Request("GET", "https://api.example.com/a", headers={"X-Trace": "1"})
        second = httpx.Request("GET", "https://api.example.com/a", headers={"X-Trace": "2"})
        assert fingerprint(first) == fingerprint(second)


class TestChainKey:
    def test_base_name_from_host_and_path(self):
        request = httpx.Request("GET", "https://api.example.com/v1/users/42/")
        assert base_name(request) == "api.example.com/v1/users/42"

    def test_base_name_root_path(self):
        request = httpx.Request("GET", "https://api.example.com/")
        assert base_name(request) == "api.example.com"

    def test_base_name_cannot_escape(self):
        request = httpx.Request("GET", "https://api.example.com/a/%2E%2E/%2E%2E/etc/pass:wd")
        name = base_name(request)
        assert ".." not in name.split("/")
        assert ":" not in name

    def test_key_name(self):
        request = httpx.Request("GET", "https://api.example.com/v1/users")
        key = chain_key(request)
        assert key.fingerprint == fingerprint(request)
        assert key.name == f"api.example.com/v1/users-{key.fingerprint}"

    def test_normalizer_applies_to_key(self):
        first = httpx.Request("GET", "https://api.example.com/items?ts=1")
        second = httpx.Request("GET", "https://api.example.com/items?ts=2")
        assert chain_key(first, strip_query) == chain_key(second, strip_query)
