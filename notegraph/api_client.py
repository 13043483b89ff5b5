import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from notegraph.schema import parse_concept_graph, parse_graph

logger = logging.getLogger(__name__)


class GraphFetchError(Exception):
    """Raised when a graph could not be fetched or did not validate."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class GraphClient:
    """Read-only client for the notes service graph endpoints."""

    def __init__(self, base_url, token="", timeout=15.0, transport=None):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def get_graph(self, depth=2, limit=100):
        payload = self._get_json("/graph", params={"depth": depth, "limit": limit})
        return self._validate(parse_graph, payload, "/graph")

    def get_concept_graph(self, name, depth=2):
        path = f"/graph/concept/{quote(name, safe='')}"
        payload = self._get_json(path, params={"depth": depth})
        return self._validate(parse_concept_graph, payload, path)

    def _get_json(self, path, params=None):
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise GraphFetchError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            raise GraphFetchError("Not authorized; sign in again", status_code=401)
        if not response.is_success:
            raise GraphFetchError(f"{path} returned HTTP {response.status_code}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise GraphFetchError(f"{path} returned invalid JSON") from e

    @staticmethod
    def _validate(parser, payload, path):
        try:
            snapshot = parser(payload)
        except ValidationError as e:
            raise GraphFetchError(f"{path} returned an unexpected payload: {e.error_count()} error(s)") from e
        logger.info(f"Fetched {path}: {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")
        return snapshot
