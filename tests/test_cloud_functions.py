"""Tests for the callable cloud functions client."""
import json

import httpx
import pytest

from matfinder.services.cloud_functions import CloudFunctionError, CloudFunctionsClient

BASE_URL = "https://us-central1-matfinder-test.cloudfunctions.net"


def recording_client(response: httpx.Response, seen: list) -> CloudFunctionsClient:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response

    return CloudFunctionsClient(base_url=BASE_URL + "/", transport=httpx.MockTransport(handler))


class TestCloudFunctions:
    async def test_call_wraps_data_and_returns_result(self):
        seen = []
        client = recording_client(httpx.Response(200, json={"result": {"ok": True}}), seen)

        assert await client.call("deleteUserData", {"uid": "u1"}, id_token="id-token") == {"ok": True}

        request = seen[0]
        assert str(request.url) == f"{BASE_URL}/deleteUserData"
        assert json.loads(request.content) == {"data": {"uid": "u1"}}
        assert request.headers["Authorization"] == "Bearer id-token"

    async def test_custom_token_from_dict_result(self):
        client = recording_client(httpx.Response(200, json={"result": {"token": "tok-1"}}), [])
        assert await client.get_custom_token("u1") == "tok-1"

    async def test_custom_token_from_string_result(self):
        client = recording_client(httpx.Response(200, json={"result": "tok-2"}), [])
        assert await client.get_custom_token("u1") == "tok-2"

    async def test_error_payload(self):
        response = httpx.Response(200, json={"error": {"message": "PERMISSION_DENIED", "status": "PERMISSION_DENIED"}})
        client = recording_client(response, [])

        with pytest.raises(CloudFunctionError) as exc_info:
            await client.get_custom_token("u1")
        assert exc_info.value.function_name == "getCustomToken"
        assert "PERMISSION_DENIED" in str(exc_info.value)

    async def test_http_error_without_body(self):
        client = recording_client(httpx.Response(500, text="oops"), [])
        with pytest.raises(CloudFunctionError) as exc_info:
            await client.delete_user_data("u1")
        assert exc_info.value.status_code == 500

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = CloudFunctionsClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(CloudFunctionError):
            await client.delete_user_data("u1")

    async def test_verification_email_payload(self):
        seen = []
        client = recording_client(httpx.Response(200, json={"result": None}), seen)

        await client.send_verification_email("a@example.com", "ace", "tok")

        data = json.loads(seen[0].content)["data"]
        assert data["email"] == "a@example.com"
        assert data["userName"] == "ace"
        assert data["verificationToken"] == "tok"
        assert data["verificationLink"].endswith("/verify?token=tok")

    async def test_not_configured_is_a_no_op(self):
        client = CloudFunctionsClient(base_url="")
        assert client.configured is False
        assert await client.get_custom_token("u1") is None
