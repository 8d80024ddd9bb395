"""reqrun builder - turn a RequestConfig into a fresh request and transport."""

import logging
import warnings

import requests
from urllib3.exceptions import InsecureRequestWarning

from reqrun.errors import InvalidRequest
from reqrun.resolver import RequestConfig

logger = logging.getLogger(__name__)


class Transport:
    """One requests.Session configured for a single attempt."""

    def __init__(self, timeout: float, verify_tls: bool = True):
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.session = requests.Session()
        self.session.verify = verify_tls

    def send(self, prepared: requests.PreparedRequest) -> requests.Response:
        """Blocking send. Raises requests.RequestException on network failure."""
        with warnings.catch_warnings():
            if not self.verify_tls:
                warnings.simplefilter("ignore", InsecureRequestWarning)
            return self.session.send(
                prepared,
                timeout=self.timeout,
                allow_redirects=True,
            )

    def close(self) -> None:
        self.session.close()


def _check_header_encoding(headers) -> None:
    """HTTP/1.1 header names and values must be latin-1 encodable."""
    for name, value in headers.items():
        for part in (name, value):
            if not isinstance(part, str):
                continue
            try:
                part.encode("latin-1")
            except UnicodeEncodeError as e:
                raise InvalidRequest(
                    f"build request: header {name!r} contains characters "
                    f"that cannot be sent: {part!r}",
                ) from e


def build_request(config: RequestConfig) -> tuple[requests.PreparedRequest, Transport]:
    """Build an independent request/transport pair from config.

    Safe to call once per attempt: headers are copied and auth is applied to
    the new request only. No network I/O happens here.
    """
    request = requests.Request(
        method=config.method,
        url=config.url,
        headers=dict(config.headers),
        data=config.body,
    )
    config.auth.apply(request)

    try:
        prepared = request.prepare()
    except (
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
        requests.exceptions.InvalidHeader,
    ) as e:
        raise InvalidRequest(f"build request: {e}") from e
    _check_header_encoding(prepared.headers)
    if not prepared.url.lower().startswith(("http://", "https://")):
        raise InvalidRequest(f"build request: unsupported URL scheme in {prepared.url!r}")

    if not config.verify_tls:
        logger.warning("TLS certificate verification is disabled for %s", config.url)

    return prepared, Transport(config.timeout, verify_tls=config.verify_tls)
