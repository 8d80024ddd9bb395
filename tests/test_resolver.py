"""Tests for merging profile defaults, CLI options and payload into a RequestConfig."""

import dataclasses
import json
import logging

import pytest

from reqrun.auth import BasicAuth, BearerAuth, NoAuth
from reqrun.errors import InvalidAuthType, MissingURL, PayloadParseError, ProfileNotFound
from reqrun.profiles import MemoryProfileStore, Profile
from reqrun.resolver import (
    CallOptions,
    RequestConfig,
    merge_headers,
    resolve_request,
    resolve_url,
)


def _store(**profiles):
    return MemoryProfileStore({name: dataclasses.replace(p, name=name) for name, p in profiles.items()})


API = Profile(
    name="api",
    base_url="https://api.example.com/",
    headers={"Accept": "application/json", "X-Client": "profile"},
)


class TestResolveUrl:
    def test_relative_joined_to_base(self):
        assert resolve_url("/users", API) == "https://api.example.com/users"

    def test_slashes_collapsed(self):
        p = Profile(name="p", base_url="https://h///")
        assert resolve_url("///a/b", p) == "https://h/a/b"

    def test_relative_without_leading_slash(self):
        assert resolve_url("users/1", API) == "https://api.example.com/users/1"

    @pytest.mark.parametrize("url", ["http://other/x", "HTTPS://Other/x"])
    def test_absolute_used_verbatim(self, url):
        assert resolve_url(url, API) == url

    def test_relative_without_profile(self):
        with pytest.raises(MissingURL):
            resolve_url("/users", None)

    def test_profile_without_base_url(self):
        with pytest.raises(MissingURL, match="no base URL"):
            resolve_url("/users", Profile(name="empty"))

    def test_empty_url(self):
        with pytest.raises(MissingURL):
            resolve_url("", API)


class TestMergeHeaders:
    def test_cli_overrides_profile(self):
        merged = merge_headers({"X-Client": "profile", "Accept": "a"}, {"X-Client": "cli"})
        assert merged == {"X-Client": "cli", "Accept": "a"}

    def test_content_type_added_with_body(self):
        assert merge_headers({}, {}, with_body=True) == {"Content-Type": "application/json"}

    def test_content_type_not_added_without_body(self):
        assert merge_headers({}, {}) == {}

    def test_existing_content_type_kept(self):
        merged = merge_headers({}, {"Content-Type": "application/merge-patch+json"}, with_body=True)
        assert merged == {"Content-Type": "application/merge-patch+json"}

    def test_existing_content_type_any_case_kept(self):
        merged = merge_headers({"content-type": "text/plain"}, {}, with_body=True)
        assert merged == {"content-type": "text/plain"}


class TestResolveRequest:
    def test_minimal(self):
        config = resolve_request(CallOptions(url="https://h/x", method="get"))
        assert config == RequestConfig(
            method="GET",
            url="https://h/x",
            headers={},
            body=None,
            timeout=30,
            auth=NoAuth(),
            verify_tls=True,
        )

    def test_profile_not_found(self):
        with pytest.raises(ProfileNotFound):
            resolve_request(CallOptions(url="/x", profile="ghost"), store=_store())

    def test_relative_url_needs_profile(self):
        with pytest.raises(MissingURL):
            resolve_request(CallOptions(url="/users"))

    def test_profile_headers_and_url(self):
        config = resolve_request(
            CallOptions(url="/users", profile="api", headers={"X-Client": "cli"}),
            store=_store(api=API),
        )
        assert config.url == "https://api.example.com/users"
        assert config.headers == {"Accept": "application/json", "X-Client": "cli"}

    def test_body_merged_and_content_type(self, tmp_path):
        body_file = tmp_path / "body.json"
        body_file.write_text(json.dumps({"a": 1, "b": 2}))
        config = resolve_request(
            CallOptions(
                url="https://h/x",
                method="post",
                json_file=str(body_file),
                data='{"b": 3, "c": 4}',
            ),
        )
        assert json.loads(config.body) == {"a": 1, "b": 3, "c": 4}
        assert config.headers["Content-Type"] == "application/json"
        assert config.method == "POST"

    def test_empty_payload_no_body(self):
        config = resolve_request(CallOptions(url="https://h/x", method="POST", data="{}"))
        assert config.body is None
        assert "Content-Type" not in config.headers
        assert config.method == "POST"

    def test_bad_inline_json(self):
        with pytest.raises(PayloadParseError):
            resolve_request(CallOptions(url="https://h/x", data="{nope"))

    def test_timeout_and_insecure(self):
        config = resolve_request(CallOptions(url="https://h/x", timeout=5, insecure=True))
        assert config.timeout == 5
        assert config.verify_tls is False

    def test_env_expands_profile(self):
        profile = Profile(name="gh", base_url="${BASE}", auth_type="bearer", token="$TOKEN")
        config = resolve_request(
            CallOptions(url="/user", profile="gh"),
            store=_store(gh=profile),
            env={"BASE": "https://api.github.com", "TOKEN": "abc"},
        )
        assert config.url == "https://api.github.com/user"
        assert config.auth == BearerAuth("abc")

    def test_config_is_frozen(self):
        config = resolve_request(CallOptions(url="https://h/x"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.url = "https://other"

    def test_headers_are_read_only(self):
        config = resolve_request(CallOptions(url="https://h/x", headers={"X-A": "1"}))
        with pytest.raises(TypeError):
            config.headers["X-B"] = "2"
        assert config.headers == {"X-A": "1"}

    def test_headers_copied_from_caller(self):
        headers = {"X-A": "1"}
        config = RequestConfig(method="GET", url="https://h/x", headers=headers)
        headers["X-A"] = "changed"
        assert config.headers["X-A"] == "1"

    def test_auth_description_logged(self, caplog):
        options = CallOptions(url="https://h/x", auth_type="bearer")
        with caplog.at_level(logging.DEBUG, logger="reqrun.resolver"):
            resolve_request(options)
        assert "auth: bearer (empty token)" in caplog.text


class TestResolveAuth:
    def test_cli_auth_without_profile(self):
        config = resolve_request(
            CallOptions(url="https://h", auth_type="basic", user="u", password="p"),
        )
        assert config.auth == BasicAuth("u", "p")

    def test_profile_auth_adopted_when_cli_none(self):
        profile = Profile(name="p", base_url="https://h", auth_type="basic", user="pu", password="pp")
        config = resolve_request(CallOptions(url="/x", profile="p"), store=_store(p=profile))
        assert config.auth == BasicAuth("pu", "pp")

    def test_cli_credentials_override_inherited_type(self):
        profile = Profile(name="p", base_url="https://h", auth_type="basic", user="pu", password="pp")
        config = resolve_request(
            CallOptions(url="/x", profile="p", user="cli-user"),
            store=_store(p=profile),
        )
        assert config.auth == BasicAuth("cli-user", "pp")

    def test_cli_type_wins_over_profile(self):
        profile = Profile(name="p", base_url="https://h", auth_type="basic", user="pu", token="pt")
        config = resolve_request(
            CallOptions(url="/x", profile="p", auth_type="bearer"),
            store=_store(p=profile),
        )
        assert config.auth == BearerAuth("pt")

    def test_profile_none_keeps_no_auth(self):
        profile = Profile(name="p", base_url="https://h", auth_type="none", token="unused")
        config = resolve_request(CallOptions(url="/x", profile="p"), store=_store(p=profile))
        assert config.auth == NoAuth()

    def test_unknown_profile_auth_type(self):
        profile = Profile(name="p", base_url="https://h", auth_type="kerberos")
        with pytest.raises(InvalidAuthType):
            resolve_request(CallOptions(url="/x", profile="p"), store=_store(p=profile))

    def test_unknown_cli_auth_type(self):
        with pytest.raises(InvalidAuthType):
            resolve_request(CallOptions(url="https://h", auth_type="digest"))
