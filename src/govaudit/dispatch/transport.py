"""HTTP transport to the controller's log-ingestion endpoints.

There is no retry or backoff. A failed request raises TransportError and
the entries are dropped by the FailureSink.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from govaudit.common.constants import TransportConstants
from govaudit.common.exceptions import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the network sink needs from a transport."""

    def send_log(self, record: Dict[str, Any]) -> None:
        ...

    def send_batch(self, records: List[Dict[str, Any]]) -> None:
        ...

    def close(self) -> None:
        ...


class HttpTransport:
    """Posts already-masked records to the controller with httpx."""

    def __init__(
        self,
        base_url: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: float = TransportConstants.DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize HTTP transport.

        Args:
            base_url: Controller base URL.
            client_id: Sent as the x-client-id header.
            client_secret: Sent as the x-client-secret header.
            timeout: Per-request timeout in seconds.
            client: Preconfigured httpx client (tests, custom auth).
        """
        headers = {}
        if client_id:
            headers[TransportConstants.CLIENT_ID_HEADER] = client_id
        if client_secret:
            headers[TransportConstants.CLIENT_SECRET_HEADER] = client_secret

        self.base_url = base_url
        self._client = client or httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
        )

    def send_log(self, record: Dict[str, Any]) -> None:
        self._post(TransportConstants.LOG_ENDPOINT, record)

    def send_batch(self, records: List[Dict[str, Any]]) -> None:
        self._post(TransportConstants.BATCH_ENDPOINT, {"logs": records})

    def _post(self, path: str, body: Dict[str, Any]) -> None:
        try:
            response = self._client.post(path, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Controller rejected {path}: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach controller at {path}: {e}") from e

    def close(self) -> None:
        self._client.close()
