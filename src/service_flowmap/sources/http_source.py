"""Subgraph source backed by a remote flow-map API.

Talks to ``GET {base_url}/api/flowmap?search=<id>``. Remote payloads come
in two edge shapes: a single legacy ``interface`` object or an
``interfaces`` array, with camelCase or snake_case fields. Both are
normalised here into one ``list[InterfaceRecord]`` so nothing past this
boundary branches on payload shape.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from ..config.defaults import HTTP_TIMEOUT_SECONDS
from ..core.exceptions import DataSourceError
from ..core.models import InterfaceRecord, InterfaceStatus, ServiceRecord, Subgraph

VALID_INTERFACE_STATUSES = {s.value for s in InterfaceStatus}

# Remote field name -> InterfaceRecord field
INTERFACE_FIELD_ALIASES = {
    "sendAppId": "sender_id",
    "sendAppName": "sender_name",
    "receivedAppId": "receiver_id",
    "receivedAppName": "receiver_name",
    "interfaceName": "name",
    "interfaceStatus": "status",
    "transferType": "transfer_type",
}

# Remote field name -> ServiceRecord field
SERVICE_FIELD_ALIASES = {
    "appInstanceId": "id",
    "serviceName": "name",
    "itServiceOwner": "owner",
    "supportGroup": "support_group",
    "appCriticality": "criticality",
}


def _rename(payload: dict[str, Any], aliases: dict[str, str], fields: set[str]) -> dict[str, Any]:
    renamed: dict[str, Any] = {}
    for key, value in payload.items():
        target = aliases.get(key, key)
        # snake_case wins when both spellings are present
        if target in fields and (target not in renamed or key == target):
            renamed[target] = value
    return renamed


def normalize_interface(payload: dict[str, Any]) -> InterfaceRecord:
    fields = set(InterfaceRecord.model_fields)
    data = _rename(payload, INTERFACE_FIELD_ALIASES, fields)
    if "interfaceStatus" in payload:
        data["status"] = payload["interfaceStatus"]
    elif data.get("status") not in VALID_INTERFACE_STATUSES:
        # Lineage-system status strings are free text
        data.pop("status", None)
    return InterfaceRecord.model_validate(data)


def normalize_service(payload: dict[str, Any]) -> ServiceRecord:
    fields = set(ServiceRecord.model_fields)
    data = _rename(payload, SERVICE_FIELD_ALIASES, fields)
    if "name" not in data and payload.get("appInstanceName"):
        data["name"] = payload["appInstanceName"]
    return ServiceRecord.model_validate(data)


def edge_interfaces(edge: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract interface payloads from either edge shape."""
    data = edge.get("data") or {}
    for container in (edge, data):
        many = container.get("interfaces")
        if many:
            return list(many)
        single = container.get("interface")
        if single:
            return [single]
    return []


def parse_flowmap_payload(center_id: str, payload: dict[str, Any]) -> Subgraph:
    """Convert a remote ``/api/flowmap`` response body into a Subgraph."""
    body = payload.get("data", payload) if "nodes" not in payload else payload
    if not body.get("serviceFound", True):
        return Subgraph.not_found(center_id)

    try:
        nodes = []
        for node in body.get("nodes") or []:
            service = (node.get("data") or {}).get("service") or node.get("service")
            if service is None:
                service = {"id": node["id"], "name": (node.get("data") or {}).get("label", "")}
            nodes.append(normalize_service(service))

        seen: set[str] = set()
        interfaces = []
        for edge in body.get("edges") or []:
            for raw in edge_interfaces(edge):
                try:
                    record = normalize_interface(raw)
                except ValidationError as e:
                    logger.warning(
                        f"Skipping malformed interface {raw.get('id')!r} "
                        f"from {center_id}: {e.error_count()} validation errors"
                    )
                    continue
                if record.id in seen:
                    continue
                seen.add(record.id)
                interfaces.append(record)
    except (ValidationError, KeyError, TypeError, AttributeError) as e:
        raise DataSourceError(
            f"Malformed flowmap payload for {center_id}: {e}", {"center_id": center_id}
        ) from e

    if not nodes and not interfaces:
        return Subgraph.not_found(center_id)
    return Subgraph(center_id=center_id, nodes=nodes, interfaces=interfaces)


class HttpSubgraphSource:
    """Fetch subgraphs from another flow-map server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def fetch_subgraph(self, center_id: str) -> Subgraph:
        url = f"{self.base_url}/api/flowmap"
        params = {"search": center_id, "action": "search"}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Flowmap API returned {e.response.status_code} for {center_id!r}")
            raise DataSourceError(
                f"Flowmap API error {e.response.status_code} for {center_id}",
                {"center_id": center_id, "status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Flowmap API request for {center_id!r} failed: {e}")
            raise DataSourceError(
                f"Flowmap API request failed for {center_id}: {e}", {"center_id": center_id}
            ) from e

        if not isinstance(payload, dict):
            raise DataSourceError(
                f"Unexpected flowmap payload for {center_id}", {"center_id": center_id}
            )
        return parse_flowmap_payload(center_id, payload)
