import httpx
import pytest

from smscode.infra.http import RequestClient
from smscode.providers import aliyun
from smscode.providers.base import ProviderError

CREDENTIALS = aliyun.AliyunCredentials(
    access_key_id="testid",
    access_key_secret="testsecret",
    sign_name="Example",
    template_code="SMS_123456789",
)
NONCE = "1700000000000000000"
EXPECTED_SIGNATURE = "rtQYfgz9n43RHEI6x/QN1QvQEes="


def _provider(handler=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler or (lambda request: httpx.Response(500))))
    return aliyun.AliyunSMSProvider(
        credentials=CREDENTIALS,
        http=RequestClient(client),
        clock=lambda: 1700000000,
        nonce=lambda: NONCE,
    )


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("abcXYZ019-_.~", "abcXYZ019-_.~"),
        ("a b", "a%20b"),
        ("a*b", "a%2Ab"),
        ("a+b", "a%2Bb"),
        ("/", "%2F"),
        ("2016-02-23T12:46:24Z", "2016-02-23T12%3A46%3A24Z"),
        ('{"code":"1"}', "%7B%22code%22%3A%221%22%7D"),
        ("阿里云", "%E9%98%BF%E9%87%8C%E4%BA%91"),
    ],
)
def test_percent_encode_follows_rfc3986_unreserved_set(raw, expected):
    assert aliyun.percent_encode(raw) == expected


def test_sign_matches_published_example():
    params = {
        "AccessKeyId": "testid",
        "Action": "DescribeRegions",
        "Format": "XML",
        "SignatureMethod": "HMAC-SHA1",
        "SignatureNonce": "3ee8c1b8-83d3-44af-a94f-4e0ad82fd6cf",
        "SignatureVersion": "1.0",
        "Timestamp": "2016-02-23T12:46:24Z",
        "Version": "2014-05-26",
    }
    assert aliyun.string_to_sign("GET", params) == (
        "GET&%2F&AccessKeyId%3Dtestid%26Action%3DDescribeRegions%26Format%3DXML"
        "%26SignatureMethod%3DHMAC-SHA1%26SignatureNonce%3D3ee8c1b8-83d3-44af-a94f-4e0ad82fd6cf"
        "%26SignatureVersion%3D1.0%26Timestamp%3D2016-02-23T12%253A46%253A24Z%26Version%3D2014-05-26"
    )
    assert aliyun.sign("GET", params, "testsecret") == "OLeaidS1JvxuMvnyHOwuJ+uX5qY="


def test_build_params_for_send_sms():
    params = _provider().build_params("13800138000", "042193")
    assert params == {
        "SignatureMethod": "HMAC-SHA1",
        "SignatureNonce": NONCE,
        "AccessKeyId": "testid",
        "SignatureVersion": "1.0",
        "Timestamp": "2023-11-14T22:13:20Z",
        "Format": "JSON",
        "Action": "SendSms",
        "Version": "2017-05-25",
        "RegionId": "cn-hangzhou",
        "PhoneNumbers": "13800138000",
        "SignName": "Example",
        "TemplateCode": "SMS_123456789",
        "TemplateParam": '{"code":"042193"}',
    }


def test_canonical_query_sorts_keys():
    query = aliyun.canonical_query(_provider().build_params("13800138000", "042193"))
    keys = [part.split("=", 1)[0] for part in query.split("&")]
    assert keys == sorted(keys)
    assert keys.index("SignName") < keys.index("SignatureMethod")


def test_signed_url_is_deterministic_and_matches_golden_vector():
    provider = _provider()
    first = provider.signed_url("13800138000", "042193")
    second = provider.signed_url("13800138000", "042193")
    assert first == second
    assert first.startswith("https://dysmsapi.aliyuncs.com/?Signature=rtQYfgz9n43RHEI6x%2FQN1QvQEes%3D&")
    assert httpx.URL(first).params["Signature"] == EXPECTED_SIGNATURE


def test_nonce_differs_between_calls_by_default():
    provider = aliyun.AliyunSMSProvider(credentials=CREDENTIALS, http=RequestClient(httpx.AsyncClient()))
    first = provider.build_params("13800138000", "1")["SignatureNonce"]
    second = provider.build_params("13800138000", "1")["SignatureNonce"]
    assert first != second


@pytest.mark.asyncio
async def test_send_issues_get_and_accepts_ok():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json={"Code": "OK", "Message": "OK", "BizId": "1^0", "RequestId": "r"})

    await _provider(handler).send("13800138000", "042193")

    request = captured["request"]
    assert request.method == "GET"
    assert request.url.host == "dysmsapi.aliyuncs.com"
    assert request.url.params["Signature"] == EXPECTED_SIGNATURE
    assert request.url.params["TemplateParam"] == '{"code":"042193"}'
    assert request.url.params["PhoneNumbers"] == "13800138000"


@pytest.mark.asyncio
async def test_send_raises_with_backend_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"Code": "isv.BUSINESS_LIMIT_CONTROL", "Message": "limit reached", "RequestId": "r"},
        )

    with pytest.raises(ProviderError, match="limit reached"):
        await _provider(handler).send("13800138000", "042193")


@pytest.mark.asyncio
async def test_send_raises_on_http_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"Code": "SignatureDoesNotMatch", "Message": "bad signature"})

    with pytest.raises(ProviderError):
        await _provider(handler).send("13800138000", "042193")
