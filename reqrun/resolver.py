"""reqrun resolver - merge profile defaults, CLI flags and payload into one request."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from reqrun.auth import AuthStrategy, NoAuth, select_auth
from reqrun.errors import MissingURL
from reqrun.payload import encode_body, load_json_file, merge_payloads, parse_json_inline
from reqrun.profiles import Profile, ProfileStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class CallOptions:
    """Raw inputs of one `reqrun call` invocation."""

    url: str
    method: str = "GET"
    profile: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    data: str | None = None
    json_file: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    auth_type: str | None = "none"
    user: str = ""
    password: str = ""
    token: str = ""


@dataclass(frozen=True)
class RequestConfig:
    """Fully resolved request. Built once, read by every attempt."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout: float = DEFAULT_TIMEOUT
    auth: AuthStrategy = field(default_factory=NoAuth)
    verify_tls: bool = True

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


def is_absolute_url(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def resolve_url(url: str, profile: Profile | None) -> str:
    """Use an absolute URL as is, otherwise join it to the profile base URL."""
    if not url:
        raise MissingURL("a URL is required")
    if is_absolute_url(url):
        return url
    if profile is None:
        raise MissingURL(f"relative URL '{url}' needs a --profile with a base URL")
    if not profile.base_url:
        raise MissingURL(
            f"profile '{profile.name}' has no base URL to resolve '{url}' against",
        )
    return profile.base_url.rstrip("/") + "/" + url.lstrip("/")


def has_header(headers: dict[str, str], name: str) -> bool:
    """Case-insensitive header presence check."""
    lowered = name.lower()
    return any(k.lower() == lowered for k in headers)


def merge_headers(
    profile_headers: dict[str, str] | None,
    cli_headers: dict[str, str] | None,
    with_body: bool = False,
) -> dict[str, str]:
    """Profile headers first, CLI headers override on the same key.

    When a body is sent and no Content-Type was given, it defaults to JSON.
    """
    headers = dict(profile_headers or {})
    headers.update(cli_headers or {})
    if with_body and not has_header(headers, "Content-Type"):
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return headers


def resolve_auth(options: CallOptions, profile: Profile | None) -> AuthStrategy:
    """CLI auth wins; an unset or "none" CLI type inherits the profile's.

    With a profile active, each credential falls back to the profile value
    on its own when the CLI left it empty.
    """
    auth_type = (options.auth_type or "").strip().lower()
    user, password, token = options.user, options.password, options.token

    if profile is not None:
        profile_type = (profile.auth_type or "").strip().lower()
        if auth_type in ("", "none") and profile_type not in ("", "none"):
            auth_type = profile_type
        user = user or profile.user
        password = password or profile.password
        token = token or profile.token

    return select_auth(auth_type, user, password, token)


def resolve_request(
    options: CallOptions,
    store: ProfileStore | None = None,
    env: dict[str, str] | None = None,
) -> RequestConfig:
    """Build the immutable RequestConfig for a call.

    Raises ProfileNotFound, MissingURL, InvalidAuthType or a payload error.
    """
    profile = None
    if options.profile:
        if store is None:
            store = ProfileStore()
        profile = store.get(options.profile)
        if env is not None:
            profile = profile.expanded(env)
        logger.debug("using profile '%s' (base URL %s)", profile.name, profile.base_url)

    url = resolve_url(options.url, profile)

    payload = merge_payloads(
        load_json_file(options.json_file),
        parse_json_inline(options.data),
    )
    body = encode_body(payload)

    headers = merge_headers(
        profile.headers if profile else None,
        options.headers,
        with_body=body is not None,
    )
    auth = resolve_auth(options, profile)
    logger.debug("auth: %s", auth.describe())

    return RequestConfig(
        method=(options.method or "GET").upper(),
        url=url,
        headers=headers,
        body=body,
        timeout=options.timeout,
        auth=auth,
        verify_tls=not options.insecure,
    )
