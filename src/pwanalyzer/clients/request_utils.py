from __future__ import annotations

import logging
from typing import Mapping, MutableMapping, Optional

import requests


logger = logging.getLogger(__name__)

USER_AGENT = "pwanalyzer/1.0 (+https://github.com/pwanalyzer)"
DEFAULT_TIMEOUT_SECONDS = 30.0


def build_request_headers(base: Optional[Mapping[str, str]] = None) -> MutableMapping[str, str]:
    """
    Return outbound request headers with the shared defaults filled in.

    Args:
        base: Optional mapping of headers to seed the final set (values here win over defaults).
    """
    headers: MutableMapping[str, str] = dict(base or {})
    headers["User-Agent"] = headers.get("User-Agent") or USER_AGENT
    headers.setdefault("Accept-Encoding", "gzip, deflate")
    return headers


def response_excerpt(response: requests.Response, limit: int = 200) -> str:
    text = response.text or ""
    return text[:limit] + ("..." if len(text) > limit else "")


class HttpTransport:
    """
    Send a prepared wire request and hand back the raw response.

    Non-2xx responses are returned, not raised; classifying them is the
    provider's job. Connection-level failures surface as
    ``requests.RequestException``.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    def __call__(self, request: requests.Request) -> requests.Response:
        response = requests.request(
            request.method,
            request.url,
            params=request.params,
            headers=request.headers,
            timeout=self.timeout,
        )
        logger.debug("%s %s -> HTTP %s", request.method, response.url, response.status_code)
        return response
