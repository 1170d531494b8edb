import logging
from urllib.parse import urljoin
from typing import Any, Mapping, Optional

import requests

from ..config import Settings
from ..errors import ConfigError, NetworkError, ProtocolError

logger = logging.getLogger(__name__)


class TronClient:
    """Read-only client for a TRON full-node HTTP API.

    Only the two calls needed to derive a client seed are exposed: the current
    head block and a block fetched by height.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ConfigError("Entropy provider base URL (TRX_API_URL) is not set")

        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, session: Optional[requests.Session] = None
    ) -> "TronClient":
        return cls(
            settings.require_entropy_url(),
            timeout=settings.request_timeout,
            session=session,
        )

    # -------- headers --------
    @property
    def public_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        try:
            r = self.session.request(
                method=method.upper(),
                url=url,
                headers=self.public_headers,
                json=json,
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"{method.upper()} {url} failed: {exc}") from exc
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise ProtocolError(f"{method.upper()} {url} returned invalid JSON") from exc

    # -------- API callers --------
    def get_now_block(self) -> Any:
        """Return the current head block."""
        return self._request("GET", "/wallet/getnowblock")

    def get_block_by_num(self, num: int) -> Any:
        """Return the block at height ``num``."""
        return self._request("POST", "/wallet/getblockbynum", json={"num": num})
