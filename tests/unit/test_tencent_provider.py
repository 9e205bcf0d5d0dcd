import json

import httpx
import pytest

from smscode.infra.http import HTTPRequestError, RequestClient
from smscode.providers import tencent
from smscode.providers.base import ProviderError

CREDENTIALS = tencent.TencentCredentials(
    secret_id="AKIDEXAMPLE",
    secret_key="secretkeyEXAMPLE",
    sdk_app_id="1400000000",
    sign_name="Example",
    template_id="1234567",
)
TIMESTAMP = 1700000000
EXPECTED_BODY = (
    b'{"PhoneNumberSet":["13800138000"],"SmsSdkAppId":"1400000000","TemplateId":"1234567",'
    b'"SignName":"Example","TemplateParamSet":["042193"]}'
)
EXPECTED_SIGNATURE = "baeccefb22fc59bdca5524cf74ac894aed14d14180aa6943213735ff138fb841"
EXPECTED_AUTHORIZATION = (
    "TC3-HMAC-SHA256 Credential=AKIDEXAMPLE/2023-11-14/sms/tc3_request, "
    "SignedHeaders=content-type;host, Signature=" + EXPECTED_SIGNATURE
)


def _provider(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return tencent.TencentSMSProvider(
        credentials=CREDENTIALS,
        http=RequestClient(client),
        clock=lambda: TIMESTAMP,
    )


def test_build_body_is_compact_json_in_field_order():
    assert tencent.build_body(CREDENTIALS, "13800138000", "042193") == EXPECTED_BODY


def test_canonical_request_layout():
    canonical = tencent.canonical_request(EXPECTED_BODY)
    assert canonical == (
        "POST\n/\n\n"
        "content-type:application/json; charset=utf-8\n"
        "host:sms.tencentcloudapi.com\n\n"
        "content-type;host\n"
        "e6afb918874f213d011f20bf83117bf28624574b3f566b238f6cbd71b15af228"
    )


def test_sign_matches_golden_vector():
    signed = tencent.sign(CREDENTIALS, EXPECTED_BODY, TIMESTAMP)
    assert signed.credential_scope == "2023-11-14/sms/tc3_request"
    assert signed.string_to_sign == (
        "TC3-HMAC-SHA256\n1700000000\n2023-11-14/sms/tc3_request\n"
        "eea8d389be59fd64abb326feb3f712ef95c34cdbcea068f24f03835e3a60a289"
    )
    assert signed.signature == EXPECTED_SIGNATURE
    assert signed.authorization == EXPECTED_AUTHORIZATION


def test_sign_is_deterministic():
    first = tencent.sign(CREDENTIALS, EXPECTED_BODY, TIMESTAMP)
    second = tencent.sign(CREDENTIALS, EXPECTED_BODY, TIMESTAMP)
    assert first == second


def test_credentials_repr_hides_secret():
    assert "secretkeyEXAMPLE" not in repr(CREDENTIALS)


@pytest.mark.asyncio
async def test_send_posts_signed_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(
            200,
            json={"Response": {"SendStatusSet": [{"Code": "Ok"}], "RequestId": "req-1"}},
        )

    await _provider(handler).send("13800138000", "042193")

    request = captured["request"]
    assert request.method == "POST"
    assert request.url.scheme == "https"
    assert request.url.host == "sms.tencentcloudapi.com"
    assert request.url.path == "/"
    assert request.content == EXPECTED_BODY
    assert request.headers["Authorization"] == EXPECTED_AUTHORIZATION
    assert request.headers["Content-Type"] == "application/json; charset=utf-8"
    assert request.headers["Host"] == "sms.tencentcloudapi.com"
    assert request.headers["X-TC-Action"] == "SendSms"
    assert request.headers["X-TC-Version"] == "2021-01-11"
    assert request.headers["X-TC-Timestamp"] == "1700000000"
    assert request.headers["X-TC-Region"] == "ap-guangzhou"


@pytest.mark.asyncio
async def test_send_raises_on_response_error():
    def handler(request: httpx.Request) -> httpx.Response:
        body = {
            "Response": {
                "Error": {"Code": "FailedOperation.SignatureIncorrectOrUnapproved", "Message": "sign not approved"},
                "RequestId": "req-2",
            }
        }
        return httpx.Response(200, content=json.dumps(body).encode())

    with pytest.raises(ProviderError) as excinfo:
        await _provider(handler).send("13800138000", "042193")
    assert "sign not approved" in str(excinfo.value)


@pytest.mark.asyncio
async def test_send_raises_on_unexpected_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(ProviderError) as excinfo:
        await _provider(handler).send("13800138000", "042193")
    assert isinstance(excinfo.value.__cause__, HTTPRequestError)
    assert excinfo.value.__cause__.status_code == 502


@pytest.mark.asyncio
async def test_send_raises_on_unparseable_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(ProviderError, match="parse"):
        await _provider(handler).send("13800138000", "042193")


@pytest.mark.asyncio
async def test_send_raises_on_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(ProviderError) as excinfo:
        await _provider(handler).send("13800138000", "042193")
    assert isinstance(excinfo.value.__cause__, HTTPRequestError)


@pytest.mark.asyncio
@pytest.mark.parametrize("error", ["boom", {}, [], 0])
async def test_send_raises_on_any_non_null_error_shape(error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Response": {"Error": error, "RequestId": "req-3"}})

    with pytest.raises(ProviderError, match="send failed"):
        await _provider(handler).send("13800138000", "042193")


@pytest.mark.asyncio
async def test_send_accepts_null_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Response": {"Error": None, "RequestId": "req-4"}})

    await _provider(handler).send("13800138000", "042193")
