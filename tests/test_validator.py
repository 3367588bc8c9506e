import json

import httpx
import pytest

from adapters.http_client import JsonRpcHttpClient, build_client
from core.domain.errors import ProtocolError
from core.domain.models import DeploymentOutputs, ProbeOutcome
from core.services.validator import PROBE_ORDER, ValidationHooks, ValidationTarget, Validator

from fakes import DEFAULT_OUTPUTS, ENDPOINT, FakeProtocolClient, FakeStatusSource, mcp_responses

TARGET = ValidationTarget(endpoint=ENDPOINT, function_name="mcp-server-prod")


def _run(settings, responses, status_source=None):
    validator = Validator(
        settings=settings,
        client=FakeProtocolClient(responses),
        status_source=status_source or FakeStatusSource(),
    )
    return {r.probe_id: r for r in validator.run(TARGET)}


def test_all_probes_pass_in_fixed_order(settings, protocol_client):
    validator = Validator(settings=settings, client=protocol_client, status_source=FakeStatusSource())

    results = validator.run(TARGET)

    assert [r.probe_id for r in results] == list(PROBE_ORDER)
    assert all(r.outcome is ProbeOutcome.PASS for r in results)
    assert [m for m, _ in protocol_client.calls] == ["initialize", "tools/list", "tools/call", "initialize"]


def test_handshake_extracts_name_and_version(settings):
    responses = mcp_responses()
    responses["initialize"] = '{"result":{"name":"svc","version":"1.0"}}'

    handshake = _run(settings, responses)["handshake"]

    assert handshake.outcome is ProbeOutcome.PASS
    assert handshake.extracted["server_name"] == "svc"
    assert handshake.extracted["server_version"] == "1.0"


def test_handshake_sends_protocol_version_and_minimal_capabilities(settings, protocol_client):
    Validator(settings=settings, client=protocol_client, status_source=FakeStatusSource()).run(TARGET)

    method, params = protocol_client.calls[0]
    assert method == "initialize"
    assert params["protocolVersion"] == "2024-11-05"
    assert params["capabilities"] == {}
    assert params["clientInfo"]["name"] == "mcp-deploy"


def test_capability_count(settings):
    capabilities = _run(settings, mcp_responses())["capabilities"]

    assert capabilities.extracted["tool_count"] == 3
    assert capabilities.extracted["tools"] == ["search", "open", "find"]


def test_capabilities_without_tools_collection_fail(settings):
    responses = mcp_responses()
    responses["tools/list"] = {"jsonrpc": "2.0", "id": 2, "result": {"resources": []}}

    assert _run(settings, responses)["capabilities"].outcome is ProbeOutcome.FAIL


def test_missing_keyword_is_a_warning_not_a_failure(settings):
    responses = mcp_responses(search_text="No results were found for that query.")

    functional = _run(settings, responses)["functional"]

    assert functional.outcome is ProbeOutcome.WARN
    assert functional.passed
    assert "limited relevance" in functional.note
    assert functional.extracted["relevant"] is False


def test_functional_probe_invokes_search_with_arguments(settings, protocol_client):
    Validator(settings=settings, client=protocol_client, status_source=FakeStatusSource()).run(TARGET)

    method, params = protocol_client.calls[2]
    assert method == "tools/call"
    assert params == {"name": "search", "arguments": {"query": "rust programming language", "topn": 3}}


def test_failed_handshake_does_not_stop_later_probes(settings):
    responses = mcp_responses()
    responses["initialize"] = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32603, "message": "boom"}}
    responses["tools/list"] = ProtocolError("tools/list: transport error: connection reset")

    results = _run(settings, responses)

    assert results["handshake"].outcome is ProbeOutcome.FAIL
    assert "boom" in results["handshake"].note
    assert results["capabilities"].outcome is ProbeOutcome.FAIL
    assert results["functional"].outcome is ProbeOutcome.PASS
    assert results["infrastructure"].outcome is ProbeOutcome.PASS
    # an error envelope still completes a round trip
    assert results["latency"].outcome is ProbeOutcome.PASS


def test_unexpected_exception_is_recorded(settings):
    responses = mcp_responses()
    responses["tools/call"] = RuntimeError("socket closed")

    results = _run(settings, responses)

    assert results["functional"].outcome is ProbeOutcome.FAIL
    assert "RuntimeError" in results["functional"].note
    assert results["latency"].passed


def test_infrastructure_reports_runtime_details(settings):
    infra = _run(settings, mcp_responses())["infrastructure"]

    assert infra.outcome is ProbeOutcome.PASS
    assert infra.extracted["architecture"] == "arm64"
    assert infra.extracted["runtime"] == "provided.al2023"
    assert infra.extracted["memory_mb"] == 512


def test_inactive_function_fails_infrastructure_probe(settings):
    infra = _run(settings, mcp_responses(), FakeStatusSource(state="Pending"))["infrastructure"]

    assert infra.outcome is ProbeOutcome.FAIL
    assert "Pending" in infra.note


def test_latency_is_observational(settings):
    latency = _run(settings, mcp_responses())["latency"]

    assert latency.outcome is ProbeOutcome.PASS
    assert latency.latency_ms is not None
    assert latency.extracted["round_trip_ms"] == latency.latency_ms


def test_hooks_see_every_probe(settings, protocol_client):
    seen = []
    Validator(settings=settings, client=protocol_client, status_source=FakeStatusSource()).run(
        TARGET, ValidationHooks(probe_done=seen.append)
    )

    assert [r.probe_id for r in seen] == list(PROBE_ORDER)


def test_target_requires_endpoint():
    with pytest.raises(ValueError):
        ValidationTarget.from_outputs(DeploymentOutputs(values={}))


def test_target_from_outputs_uses_function_arn():
    target = ValidationTarget.from_outputs(DeploymentOutputs(values=DEFAULT_OUTPUTS), fallback_function_name="x")

    assert target.endpoint == ENDPOINT
    assert target.function_name == "mcp-server-prod"


def test_validator_over_http(settings):
    responses = mcp_responses()
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        payload = dict(responses[body["method"]])
        payload["id"] = body["id"]
        return httpx.Response(200, json=payload)

    client = JsonRpcHttpClient(ENDPOINT, build_client(settings, transport=httpx.MockTransport(handler)))
    results = Validator(settings=settings, client=client, status_source=FakeStatusSource()).run(TARGET)

    assert all(r.passed for r in results)
    assert [b["id"] for b in seen] == [1, 2, 3, 4]
    assert all(b["jsonrpc"] == "2.0" for b in seen)


def test_http_client_wraps_non_json_as_protocol_error(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    client = JsonRpcHttpClient(ENDPOINT, build_client(settings, transport=transport))

    with pytest.raises(ProtocolError, match="HTTP 502"):
        client.call("initialize")


def test_http_client_wraps_transport_errors(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = JsonRpcHttpClient(ENDPOINT, build_client(settings, transport=httpx.MockTransport(handler)))

    with pytest.raises(ProtocolError, match="transport error"):
        client.call("tools/list")
