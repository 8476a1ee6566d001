"""Tests for the per-source cookie store and the auth probe."""

import json
import time

import pytest

from quick_search.auth import AuthProbe
from quick_search.credentials import CredentialStore, domain_matches, is_expired, parse_set_cookie, to_cdp_cookie_params


def _cookie(name: str, domain: str = ".reddit.com", **extra) -> dict:
    return {"name": name, "value": f"{name}-value", "domain": domain, "path": "/", **extra}


class TestCookieHelpers:
    def test_session_cookie_never_expires(self):
        assert is_expired({"expires": -1}) is False
        assert is_expired({}) is False

    def test_past_expiry_is_expired(self):
        assert is_expired({"expires": time.time() - 10}) is True

    def test_domain_matching(self):
        assert domain_matches(".reddit.com", "www.reddit.com")
        assert domain_matches("reddit.com", "reddit.com")
        assert not domain_matches("reddit.com", "notreddit.com")

    def test_cdp_params_drop_session_expiry(self):
        (param,) = to_cdp_cookie_params([_cookie("a", expires=-1, extra="ignored")])
        assert "expires" not in param
        assert "extra" not in param


class TestParseSetCookie:
    NOW = 1_700_000_000.0

    def test_host_only_session_cookie(self):
        cookie = parse_set_cookie("loid=xyz; HttpOnly", "https://www.reddit.com/r/python/search.json", now=self.NOW)
        assert cookie == {
            "name": "loid",
            "value": "xyz",
            "domain": "www.reddit.com",
            "path": "/r/python",
            "expires": -1.0,
            "httpOnly": True,
            "secure": False,
        }

    def test_domain_and_attributes(self):
        cookie = parse_set_cookie("_t=abc; domain=Linux.do; path=/; Secure; SameSite=lax", "https://linux.do/search", now=self.NOW)
        assert cookie["domain"] == ".linux.do"
        assert cookie["secure"] is True
        assert cookie["sameSite"] == "Lax"

    def test_max_age_overrides_expires(self):
        cookie = parse_set_cookie("a=1; Expires=Thu, 01 Jan 1970 00:00:00 GMT; Max-Age=60", "https://x.com/", now=self.NOW)
        assert cookie["expires"] == self.NOW + 60

    def test_deletions_come_back_expired(self):
        for header in ("a=; Max-Age=0", "a=; Expires=Thu, 01 Jan 1970 00:00:00 GMT"):
            assert is_expired(parse_set_cookie(header, "https://x.com/", now=self.NOW), now=self.NOW)

    def test_rejects_foreign_domain_and_bad_pairs(self):
        assert parse_set_cookie("a=1; Domain=example.com", "https://www.reddit.com/", now=self.NOW) is None
        assert parse_set_cookie("novalue", "https://www.reddit.com/", now=self.NOW) is None
        assert parse_set_cookie("=1", "https://www.reddit.com/", now=self.NOW) is None


class TestCredentialStore:
    def test_empty_context(self, store: CredentialStore):
        assert store.load("reddit") == []

    def test_merge_then_load(self, store: CredentialStore):
        assert store.merge("reddit", [_cookie("session"), _cookie("csrf")]) == 2
        assert {c["name"] for c in store.load("reddit")} == {"session", "csrf"}

    def test_merge_replaces_same_key(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session")])
        store.merge("reddit", [_cookie("session", value="new")])
        (cookie,) = store.load("reddit")
        assert cookie["value"] == "new"

    def test_expired_incoming_cookie_deletes_stored(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session")])
        assert store.merge("reddit", [_cookie("session", expires=time.time() - 60)]) == 0
        assert store.load("reddit") == []

    def test_contexts_are_isolated(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session")])
        assert store.load("linuxdo") == []

    def test_cookies_for_filters_by_host(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session"), _cookie("other", domain="example.com")])
        assert [c["name"] for c in store.cookies_for("reddit", "https://www.reddit.com/search.json")] == ["session"]

    def test_file_format(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session")])
        data = json.loads((store.directory / "reddit.json").read_text())
        assert data["source_id"] == "reddit"
        assert data["cookies"][0]["name"] == "session"

    def test_clear_removes_context_and_profile(self, store: CredentialStore):
        store.merge("reddit", [_cookie("session")])
        profile = store.browser_profile_dir("reddit")
        profile.mkdir(parents=True)
        assert store.clear("reddit") is True
        assert store.load("reddit") == []
        assert not profile.exists()

    def test_clear_without_context(self, store: CredentialStore):
        assert store.clear("reddit") is False

    def test_unreadable_file_is_empty(self, store: CredentialStore):
        (store.directory / "reddit.json").write_text("{not json")
        assert store.load("reddit") == []

    def test_invalid_source_id(self, store: CredentialStore):
        with pytest.raises(ValueError):
            store.load("///")

    @pytest.mark.anyio
    async def test_async_wrappers(self, store: CredentialStore):
        await store.amerge("reddit", [_cookie("session")])
        assert len(await store.aload("reddit")) == 1
        assert await store.aclear("reddit") is True


class TestAuthProbe:
    @pytest.mark.anyio
    async def test_no_cookie_means_logged_out(self, sources, store):
        probe = AuthProbe(sources, store)
        assert await probe.is_authenticated("reddit") is False

    @pytest.mark.anyio
    async def test_live_cookie_for_origin(self, sources, store):
        store.merge("reddit", [_cookie("session")])
        assert await AuthProbe(sources, store).is_authenticated("reddit") is True

    @pytest.mark.anyio
    async def test_expired_cookie_does_not_count(self, sources, store):
        path = store.directory / "reddit.json"
        path.write_text(json.dumps({"cookies": [_cookie("session", expires=time.time() - 5)]}))
        assert await AuthProbe(sources, store).is_authenticated("reddit") is False

    @pytest.mark.anyio
    async def test_cookie_for_other_origin_does_not_count(self, sources, store):
        store.merge("x", [_cookie("auth_token", domain="example.com")])
        assert await AuthProbe(sources, store).is_authenticated("x") is False

    @pytest.mark.anyio
    async def test_x_session_needs_named_cookie(self, sources, store):
        probe = AuthProbe(sources, store)
        store.merge("x", [_cookie("guest_id", domain=".x.com")])
        assert await probe.is_authenticated("x") is True
        assert await probe.has_session("x") is False

        store.merge("x", [_cookie("auth_token", domain=".x.com")])
        assert await probe.has_session("x") is True

    @pytest.mark.anyio
    async def test_unknown_source(self, sources, store):
        assert await AuthProbe(sources, store).is_authenticated("myspace") is False

    @pytest.mark.anyio
    async def test_all_status_covers_every_source(self, sources, store):
        store.merge("reddit", [_cookie("session")])
        status = await AuthProbe(sources, store).get_all_auth_status()
        assert list(status) == [s.id for s in sources]
        assert status["reddit"] is True
        assert status["github"] is False
