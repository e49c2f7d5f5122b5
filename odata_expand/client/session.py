"""
odata_expand.client.session - OData HTTP session
=================================================

Low-level HTTP session for OData services with:
- Automatic retry with exponential backoff
- JSON accept headers and OData version negotiation
- Proper error extraction from OData error bodies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import json
import logging
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


class ODataUpstreamError(RuntimeError):
    """
    Exception raised when the OData service returns an error.

    Attributes
    ----------
    status : int
        HTTP status code
    body : str
        Extracted error message or raw response body
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    def __init__(
        self,
        status: int,
        body: str,
        url: str,
        headers: Optional[Dict[str, str]] = None
    ):
        snippet = (body or "")[:1200]
        super().__init__(f"OData upstream error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url
        self.headers = headers or {}


@dataclass
class ODataConfig:
    """
    Connection configuration for an OData service.

    Parameters
    ----------
    base_url : str
        Service root, e.g. "http://localhost:5050/odata/"
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of retry attempts (default: 3)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    headers : dict
        Extra headers sent with every request

    Examples
    --------
    >>> cfg = ODataConfig(base_url="http://localhost:5050/odata/")
    """
    base_url: str
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "odata-expand-client/0.1"
    headers: Dict[str, str] = field(default_factory=dict)


class ODataSession:
    """
    Low-level HTTP session for OData v4 services.

    Use as a context manager for automatic cleanup.

    Parameters
    ----------
    cfg : ODataConfig
        Connection configuration

    Examples
    --------
    >>> cfg = ODataConfig(base_url="http://localhost:5050/odata/")
    >>> with ODataSession(cfg) as sess:
    ...     data = sess.get("Persons", params={"$top": "5"})
    """

    def __init__(self, cfg: ODataConfig) -> None:
        self.cfg = cfg
        self.base = cfg.base_url.rstrip("/") + "/"
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("odata_expand.client")

        self.session = self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "ODataSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()
        sess.headers.update({
            "Accept": "application/json",
            "OData-Version": "4.0",
            "OData-MaxVersion": "4.0",
            "User-Agent": self.cfg.user_agent,
        })
        sess.headers.update(self.cfg.headers)

        # POST is not idempotent here, so it is never retried
        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=20)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    # ---------------- helpers ----------------

    def url(self, path: str) -> str:
        return f"{self.base}{path.lstrip('/')}"

    def _json_or_text(self, r: Response) -> Dict[str, Any]:
        ctype = (r.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            try:
                return r.json()
            except ValueError:
                pass
        return {"raw": r.text, "content_type": r.headers.get("Content-Type", "")}

    def _extract_error(self, r: Response) -> str:
        try:
            data = r.json()
        except ValueError:
            return r.text
        if not isinstance(data, dict):
            return r.text
        err = data.get("error")
        if not isinstance(err, dict):
            detail = data.get("detail")
            return json.dumps(detail) if detail is not None else r.text

        code = err.get("code")
        message = err.get("message")
        if isinstance(message, dict):
            message = message.get("value")

        parts = []
        if code:
            parts.append(f"code={code}")
        if message:
            parts.append(f"message={message}")
        return " | ".join(parts) or r.text

    def raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400:
            body = self._extract_error(r)
            raise ODataUpstreamError(r.status_code, body, url, dict(r.headers))

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[Union[str, bytes]] = None,
    ) -> Response:
        t0 = time.perf_counter()
        r = self.session.request(
            method=method,
            url=url,
            params=params,
            headers=headers,
            data=data,
            timeout=self.timeout,
            verify=self.verify,
        )
        self.raise_for_error(r, url)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %sms", method.upper(), url, round(dt, 1))
        return r

    # ---------------- public ops ----------------

    def get(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Execute a GET request against a service path.

        Parameters
        ----------
        path : str
            Entity set or path relative to the service root, e.g. "Persons"
        params : dict, optional
            Query parameters

        Returns
        -------
        dict
            Parsed JSON response
        """
        r = self._request("GET", self.url(path), params=params)
        return self._json_or_text(r)

    def get_url(self, url: str) -> Dict[str, Any]:
        """GET an absolute URL, e.g. an ``@odata.nextLink``."""
        r = self._request("GET", url)
        return self._json_or_text(r)

    def get_text(self, path: str) -> str:
        """
        Execute a GET request and return the raw text response.

        Useful for $metadata which returns XML.
        """
        headers = {"Accept": "application/xml"} if path.endswith("$metadata") else None
        r = self._request("GET", self.url(path), headers=headers)
        return r.text

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a POST (create) request against an entity set."""
        r = self._request(
            "POST",
            self.url(path),
            headers={"Content-Type": "application/json"},
            data=json.dumps(payload, separators=(",", ":")),
        )
        return self._json_or_text(r)
