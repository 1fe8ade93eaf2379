import json

import httpx
import pytest

from vocab_srs.core.gateway import CredentialGateway
from vocab_srs.errors import GatewayError

ENDPOINT = "https://api.openai.com/v1/chat/completions"


@pytest.fixture
def seen():
    return []


@pytest.fixture
def gateway(seen):
    def upstream(request):
        seen.append(request)
        if request.url.path.endswith("/bad"):
            return httpx.Response(401, json={"error": {"message": "bad key"}})
        return httpx.Response(200, json={"echo": json.loads(request.content)})

    return CredentialGateway(api_key="sk-test", client=httpx.Client(transport=httpx.MockTransport(upstream)))


def test_forwards_body_with_server_side_key(gateway, seen):
    status, headers, body = gateway.handle("POST", {"endpoint": ENDPOINT, "body": {"model": "gpt-4o-mini"}})
    assert status == 200
    assert body == {"echo": {"model": "gpt-4o-mini"}}
    assert seen[0].headers["Authorization"] == "Bearer sk-test"
    assert headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.parametrize("endpoint", [
    "https://evil.example.com/v1/chat/completions",
    "https://api.openai.com.evil.example.com/v1",
    "http://api.openai.com/v1/chat/completions",
    "not a url",
    None,
    42,
])
def test_rejects_endpoints_outside_allow_list(gateway, seen, endpoint):
    status, _, body = gateway.handle("POST", {"endpoint": endpoint, "body": {}})
    assert status == 400
    assert "error" in body
    assert seen == []


def test_upstream_errors_pass_through(gateway):
    status, _, body = gateway.handle("POST", {"endpoint": "https://api.openai.com/v1/bad", "body": {}})
    assert status == 401
    assert body["error"]["message"] == "bad key"


def test_preflight_and_method(gateway):
    assert gateway.handle("OPTIONS", None)[0] == 200
    assert gateway.handle("GET", None)[0] == 405


def test_missing_key_is_server_error(seen):
    gw = CredentialGateway(api_key="", client=httpx.Client(transport=httpx.MockTransport(seen.append)))
    with pytest.raises(GatewayError) as exc:
        gw.forward(ENDPOINT, {})
    assert exc.value.status_code == 500


def test_owned_client_is_closed_on_exit():
    with CredentialGateway(api_key="sk-test") as gw:
        assert not gw.client.is_closed
    assert gw.client.is_closed


def test_injected_client_is_left_open():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    with CredentialGateway(api_key="sk-test", client=client):
        pass
    assert not client.is_closed
    client.close()
