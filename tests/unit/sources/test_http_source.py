"""Tests for the remote flowmap API source."""

from __future__ import annotations

import httpx
import pytest

from service_flowmap.core.exceptions import DataSourceError
from service_flowmap.server import flowmap_payload
from service_flowmap.sources.http_source import (
    HttpSubgraphSource,
    edge_interfaces,
    normalize_interface,
    normalize_service,
    parse_flowmap_payload,
)

pytestmark = pytest.mark.unit

LEGACY_PAYLOAD = {
    "nodes": [
        {
            "id": "APP-001",
            "type": "service",
            "data": {
                "label": "Payments",
                "service": {"appInstanceId": "APP-001", "serviceName": "Payments"},
            },
        },
        {
            "id": "APP-002",
            "type": "service",
            "data": {"label": "Ledger", "service": {"appInstanceId": "APP-002"}},
        },
        {"id": "APP-003", "data": {"label": "Reporting"}},
    ],
    "edges": [
        {
            "id": "e1",
            "source": "APP-001",
            "target": "APP-002",
            "data": {
                "interface": {
                    "id": "IF-1",
                    "sendAppId": "APP-001",
                    "receivedAppId": "APP-002",
                    "interfaceName": "Payment postings",
                    "interfaceStatus": "ACTIVE",
                    "priority": "HIGH",
                    "status": "In Production",
                }
            },
        },
        {
            "id": "e2",
            "source": "APP-002",
            "target": "APP-001",
            "data": {
                "interfaces": [
                    {"id": "IF-2", "sendAppId": "APP-002", "receivedAppId": "APP-001"},
                    {"id": "IF-1", "sendAppId": "APP-001", "receivedAppId": "APP-002"},
                ]
            },
        },
    ],
    "searchTerm": "APP-001",
    "serviceFound": True,
}


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNormalization:
    def test_camel_case_interface(self):
        record = normalize_interface(LEGACY_PAYLOAD["edges"][0]["data"]["interface"])

        assert record.sender_id == "APP-001"
        assert record.receiver_id == "APP-002"
        assert record.name == "Payment postings"
        assert record.status == "ACTIVE"
        assert record.priority == "HIGH"

    def test_free_text_status_is_dropped(self):
        record = normalize_interface({"id": "x", "status": "In Production"})

        assert record.status == "ACTIVE"

    def test_snake_case_interface(self):
        record = normalize_interface(
            {"id": "x", "sender_id": "A", "receiver_id": "B", "status": "TBC"}
        )

        assert (record.sender_id, record.receiver_id, record.status) == ("A", "B", "TBC")

    def test_service_name_fallback(self):
        service = normalize_service({"appInstanceId": "A", "appInstanceName": "Alpha"})

        assert (service.id, service.name) == ("A", "Alpha")

    @pytest.mark.parametrize(
        "edge,expected",
        [
            ({"interfaces": [{"id": "1"}, {"id": "2"}]}, ["1", "2"]),
            ({"interface": {"id": "1"}}, ["1"]),
            ({"data": {"interface": {"id": "1"}}}, ["1"]),
            ({"data": {}}, []),
        ],
    )
    def test_edge_interfaces_shapes(self, edge, expected):
        assert [i["id"] for i in edge_interfaces(edge)] == expected


class TestParsePayload:
    def test_legacy_payload(self):
        subgraph = parse_flowmap_payload("APP-001", LEGACY_PAYLOAD)

        assert [n.id for n in subgraph.nodes] == ["APP-001", "APP-002", "APP-003"]
        assert subgraph.nodes[2].name == "Reporting"
        # IF-1 appears on both edges but is kept once
        assert [i.id for i in subgraph.interfaces] == ["IF-1", "IF-2"]

    def test_wrapped_payload(self):
        subgraph = parse_flowmap_payload("APP-001", {"data": LEGACY_PAYLOAD})

        assert len(subgraph.nodes) == 3

    def test_service_not_found(self):
        subgraph = parse_flowmap_payload("NOPE", {"nodes": [], "edges": [], "serviceFound": False})

        assert not subgraph.found

    def test_malformed_payload(self):
        with pytest.raises(DataSourceError):
            parse_flowmap_payload("APP-001", {"nodes": [{"data": {}}], "edges": []})

    def test_invalid_interface_is_skipped(self):
        payload = {
            "nodes": [{"id": "APP-001", "data": {"label": "Payments"}}],
            "edges": [
                {
                    "id": "e1",
                    "data": {
                        "interfaces": [
                            {"id": "IF-1", "sendAppId": "APP-001", "receivedAppId": "APP-002"},
                            {
                                "id": "IF-9",
                                "sendAppId": "APP-001",
                                "receivedAppId": "APP-002",
                                "priority": "URGENT",
                            },
                        ]
                    },
                }
            ],
        }

        subgraph = parse_flowmap_payload("APP-001", payload)

        assert subgraph.found
        assert [i.id for i in subgraph.interfaces] == ["IF-1"]

    @pytest.mark.asyncio
    async def test_reads_own_server_payload(self, memory_source):
        subgraph = await memory_source.fetch_subgraph("APP-001")

        parsed = parse_flowmap_payload("APP-001", flowmap_payload(subgraph, "APP-001"))

        assert [n.id for n in parsed.nodes] == [n.id for n in subgraph.nodes]
        assert {i.id for i in parsed.interfaces} == {i.id for i in subgraph.interfaces}
        assert next(n for n in parsed.nodes if n.id == "APP-004").placeholder


class TestHttpSubgraphSource:
    @pytest.mark.asyncio
    async def test_fetch_subgraph(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=LEGACY_PAYLOAD)

        async with mock_client(handler) as client:
            source = HttpSubgraphSource("http://flowmap.test/", client=client)
            subgraph = await source.fetch_subgraph("APP-001")

        assert seen["path"] == "/api/flowmap"
        assert seen["params"] == {"search": "APP-001", "action": "search"}
        assert len(subgraph.interfaces) == 2

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        async with mock_client(lambda request: httpx.Response(500)) as client:
            source = HttpSubgraphSource("http://flowmap.test", client=client)

            with pytest.raises(DataSourceError) as exc_info:
                await source.fetch_subgraph("APP-001")

        assert exc_info.value.context["status_code"] == 500

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            source = HttpSubgraphSource("http://flowmap.test", client=client)

            with pytest.raises(DataSourceError, match="request failed"):
                await source.fetch_subgraph("APP-001")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with mock_client(lambda request: httpx.Response(200, text="<html>")) as client:
            source = HttpSubgraphSource("http://flowmap.test", client=client)

            with pytest.raises(DataSourceError):
                await source.fetch_subgraph("APP-001")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        async with mock_client(lambda request: httpx.Response(200, json=[1, 2])) as client:
            source = HttpSubgraphSource("http://flowmap.test", client=client)

            with pytest.raises(DataSourceError, match="Unexpected"):
                await source.fetch_subgraph("APP-001")
