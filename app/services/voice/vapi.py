"""Vapi web-call client."""
import logging
from typing import Any, Dict, Optional, Union
import httpx

from app.services.voice.base import VoiceClient

logger = logging.getLogger(__name__)


class VapiWebClient(VoiceClient):
    """Starts and ends Vapi web calls over the REST API.

    Call events are not streamed back over this client: the platform posts
    them to the voice webhook, which replays them through ``emit``.
    """

    def __init__(
        self,
        web_token: str,
        api_url: str = "https://api.vapi.ai",
        session_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        super().__init__()
        self.web_token = web_token
        self.api_url = api_url.rstrip("/")
        self.session_id = session_id
        self._http_client = http_client
        self.timeout = timeout
        self.control_url: Optional[str] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def build_request_body(
        self, assistant: Union[str, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build the ``POST /call/web`` body."""
        body: Dict[str, Any] = {}
        if isinstance(assistant, str):
            body["assistantId"] = assistant
        else:
            body["assistant"] = assistant

        overrides: Dict[str, Any] = dict(options or {})
        if self.session_id:
            metadata = dict(overrides.get("metadata") or {})
            metadata["sessionId"] = self.session_id
            overrides["metadata"] = metadata
        if overrides:
            body["assistantOverrides"] = overrides
        return body

    async def start(
        self, assistant: Union[str, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create a web call. Raises httpx errors on failure."""
        body = self.build_request_body(assistant, options)
        logger.info(
            f"[VAPI] Creating web call - session: {self.session_id}, "
            f"assistant: {'id' if 'assistantId' in body else 'inline'}"
        )
        response = await self._client().post(
            f"{self.api_url}/call/web",
            json=body,
            headers={"Authorization": f"Bearer {self.web_token}"},
        )
        response.raise_for_status()
        data = response.json()

        self.call_id = data.get("id")
        self.web_call_url = data.get("webCallUrl")
        self.control_url = (data.get("monitor") or {}).get("controlUrl")
        logger.info(f"[VAPI] Web call created - session: {self.session_id}, call: {self.call_id}")
        return data

    async def stop(self) -> None:
        """Ask the platform to end the call, if one was started."""
        if not self.control_url:
            logger.debug(f"[VAPI] stop() with no active call - session: {self.session_id}")
            return
        response = await self._client().post(self.control_url, json={"type": "end-call"})
        response.raise_for_status()
        logger.info(f"[VAPI] End-call sent - session: {self.session_id}, call: {self.call_id}")

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
