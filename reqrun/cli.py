"""reqrun CLI - run one HTTP request with profiles, auth and retry."""

import logging
import sys

import click

from reqrun.auth import AUTH_TYPES
from reqrun.errors import ReqrunError

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

TOOL_HELP = """\
reqrun — run one HTTP request from the command line.

\b
EXAMPLES
────────
  reqrun call -u "https://api.agify.io/?name=meelad"
  reqrun call -X POST -u https://httpbin.org/post -d '{"name":"test"}' --pretty
  reqrun call -p github -u /user --json-only --pretty
  reqrun call -u https://example.com/flaky --retries 3 --retry-delay 0.5

\b
PROFILES
────────
  Profiles hold a base URL, default headers and auth. They live in
  ~/.reqrun/profiles.yaml (override with -c or $REQRUN_CONFIG):

  \b
  profiles:
    github:
      base_url: https://api.github.com
      headers:
        Accept: application/vnd.github+json
      auth_type: bearer               # none | basic | bearer
      token: ${GITHUB_TOKEN}          # resolved from env / --env-file

  reqrun profile add github --base-url https://api.github.com --auth bearer --token ...
  reqrun profile list
  reqrun profile show github
  reqrun profile remove github

\b
PRECEDENCE
──────────
  Headers:  profile < -H flags
  Auth:     --auth flag, else profile auth; each credential falls back
            to the profile value when the flag is empty
  Body:     --json-file < -d (top-level keys, inline wins)
"""


def _parse_header_option(ctx, param, values):
    """click callback: turn repeated 'Key: Value' flags into a dict."""
    headers = {}
    for raw in values:
        if ":" not in raw:
            raise click.BadParameter(f"invalid header {raw!r}, expected 'Key: Value'")
        key, value = raw.split(":", 1)
        key = key.strip()
        if not key:
            raise click.BadParameter(f"header key cannot be empty in {raw!r}")
        headers[key] = value.strip()
    return headers


def _configure_logging(debug: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger = logging.getLogger("reqrun")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False


def _fail(err: Exception) -> None:
    click.echo(f"ERROR: {err}", err=True)
    sys.exit(1)


@click.group(help=TOOL_HELP, context_settings={"max_content_width": 88})
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Profile file path. Default: $REQRUN_CONFIG or ~/.reqrun/profiles.yaml.",
)
@click.option("--debug", is_flag=True, default=False, help="Log attempts and retries to stderr.")
@click.pass_context
def main(ctx, config_file, debug):
    """Run HTTP requests with profiles, auth and retry."""
    from reqrun.profiles import ProfileStore

    _configure_logging(debug)
    ctx.obj = ProfileStore(config_file)


# ── call ────────────────────────────────────────────────────────────────


@main.command("call")
@click.option("-X", "--method", default="GET", show_default=True, help="HTTP method.")
@click.option(
    "-u",
    "--url",
    required=True,
    help="Request URL, absolute or relative to the --profile base URL.",
)
@click.option("-p", "--profile", "profile_name", default=None, help="Profile name.")
@click.option("-d", "--data", default=None, help="Inline JSON object body.")
@click.option(
    "--json-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON object file merged under --data.",
)
@click.option(
    "-H",
    "--header",
    "headers",
    multiple=True,
    callback=_parse_header_option,
    help="HTTP header as 'Key: Value'. Repeatable.",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=30,
    show_default=True,
    help="Timeout in seconds.",
)
@click.option(
    "-k",
    "--insecure",
    is_flag=True,
    default=False,
    help="Skip TLS certificate verification.",
)
@click.option(
    "--auth",
    "auth_type",
    type=click.Choice(AUTH_TYPES, case_sensitive=False),
    default="none",
    show_default=True,
    help="Auth scheme.",
)
@click.option("--user", default="", help="Username for basic auth.")
@click.option("--pass", "password", default="", help="Password for basic auth.")
@click.option("--token", default="", help="Bearer token.")
@click.option("--pretty", is_flag=True, default=False, help="Pretty-print JSON responses.")
@click.option("--raw", is_flag=True, default=False, help="Print only the response body.")
@click.option(
    "--json-only",
    is_flag=True,
    default=False,
    help="Print only the response body. Wins over --raw.",
)
@click.option("-o", "--out", "out_path", default=None, help="Also write the body to a file.")
@click.option(
    "--retries",
    type=int,
    default=0,
    show_default=True,
    help="Retries on network errors and 5xx responses.",
)
@click.option(
    "--retry-delay",
    type=click.FloatRange(min=0),
    default=1.0,
    show_default=True,
    help="Seconds to wait between attempts.",
)
@click.option(
    "--env-file",
    default=None,
    help="Load variables for $VAR references in profiles from a .env file.",
)
@click.option(
    "--show-request",
    is_flag=True,
    default=False,
    help="Print the request before sending it.",
)
@click.pass_obj
def call(
    store,
    method,
    url,
    profile_name,
    data,
    json_file,
    headers,
    timeout,
    insecure,
    auth_type,
    user,
    password,
    token,
    pretty,
    raw,
    json_only,
    out_path,
    retries,
    retry_delay,
    env_file,
    show_request,
):
    """Execute a REST API call."""
    from reqrun.builder import build_request
    from reqrun.executor import execute
    from reqrun.profiles import load_env
    from reqrun.render import render_request_preview, render_response, write_output
    from reqrun.resolver import CallOptions, resolve_request

    options = CallOptions(
        url=url,
        method=method,
        profile=profile_name,
        headers=headers,
        data=data,
        json_file=json_file,
        timeout=timeout,
        insecure=insecure,
        auth_type=auth_type,
        user=user,
        password=password,
        token=token,
    )

    try:
        env = load_env(env_file)
        config = resolve_request(options, store=store, env=env)
        if show_request:
            prepared, transport = build_request(config)
            transport.close()
            click.echo(render_request_preview(prepared, transport, config.auth.describe()))
            click.echo()
        result = execute(config, retries=retries, retry_delay=retry_delay)
    except ReqrunError as e:
        _fail(e)

    text, body = render_response(result, pretty=pretty, raw=raw, json_only=json_only)
    click.echo(text)

    if out_path:
        try:
            write_output(out_path, body)
        except ReqrunError as e:
            _fail(e)


# ── profile ─────────────────────────────────────────────────────────────


@main.group("profile")
def profile_group():
    """Manage profiles (add/list/show/remove)."""


@profile_group.command("add")
@click.argument("name")
@click.option("--base-url", default="", help="Base URL, e.g. https://api.example.com.")
@click.option(
    "--auth",
    "auth_type",
    type=click.Choice(AUTH_TYPES, case_sensitive=False),
    default="none",
    show_default=True,
)
@click.option("--user", default="", help="Username for basic auth.")
@click.option("--pass", "password", default="", help="Password for basic auth.")
@click.option("--token", default="", help="Bearer token.")
@click.option(
    "-H",
    "--header",
    "headers",
    multiple=True,
    callback=_parse_header_option,
    help="Default header as 'Key: Value'. Repeatable.",
)
@click.pass_obj
def profile_add(store, name, base_url, auth_type, user, password, token, headers):
    """Create or replace a profile."""
    from reqrun.profiles import Profile

    profile = Profile(
        name=name,
        base_url=base_url,
        headers=headers,
        auth_type=auth_type.lower(),
        user=user,
        password=password,
        token=token,
    )
    try:
        store.put(profile)
    except ReqrunError as e:
        _fail(e)
    click.echo(f"Profile '{name}' saved to {store.path}")


@profile_group.command("list")
@click.pass_obj
def profile_list(store):
    """List profiles."""
    try:
        profiles = store.load()
    except ReqrunError as e:
        _fail(e)

    if not profiles:
        click.echo("No profiles defined.")
        return

    click.echo("Profiles:")
    for name in sorted(profiles):
        p = profiles[name]
        click.echo(f"  {name}  (base-url: {p.base_url or '-'}, auth: {p.auth_type or 'none'})")


@profile_group.command("show")
@click.argument("name")
@click.pass_obj
def profile_show(store, name):
    """Show one profile. Secrets are masked."""
    try:
        p = store.get(name)
    except ReqrunError as e:
        _fail(e)

    click.echo(f"Profile '{name}'")
    click.echo(f"  Base URL : {p.base_url}")
    click.echo(f"  Auth     : {p.auth_type or 'none'}")
    if p.user:
        click.echo(f"  User     : {p.user}")
    if p.password:
        click.echo("  Pass     : (set)")
    if p.token:
        click.echo("  Token    : (set)")
    if p.headers:
        click.echo("  Headers  :")
        for k, v in p.headers.items():
            click.echo(f"    {k}: {v}")


@profile_group.command("remove")
@click.argument("name")
@click.pass_obj
def profile_remove(store, name):
    """Delete a profile."""
    try:
        store.remove(name)
    except ReqrunError as e:
        _fail(e)
    click.echo(f"Profile '{name}' removed")
