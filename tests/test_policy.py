import base64
import json
from datetime import timedelta

import pytest

from storagesigner._policy import PolicySigner
from storagesigner.error import (
    InvalidArgumentException,
    ExpirationInPastException,
    ExpirationTooFarException,
)
from storagesigner.models import HostStyle

from stubs import NOW, CLIENT_EMAIL, BUCKET_NAME, FILE_NAME, SIGNATURE


@pytest.fixture
def policy_signer(credential_signer, clock):
    return PolicySigner(credential_signer, clock=clock)


def _decode(policy_base64):
    return json.loads(base64.b64decode(policy_base64))


@pytest.mark.asyncio
async def test_v4_policy_document(policy_signer, credential_signer):
    policy = await policy_signer.sign_post_policy_v4(
        bucket=BUCKET_NAME,
        object_name=FILE_NAME,
        expires=NOW + timedelta(seconds=10),
        conditions=[
            ["starts-with", "$key", "file"],
            ["content-length-range", 0, 1024],
        ],
        fields={"x-goog-meta-test": "data", "x-ignore-mykey": "value"},
    )

    credential = f"{CLIENT_EMAIL}/20190318/auto/storage/goog4_request"
    assert policy.url == f"https://storage.googleapis.com/{BUCKET_NAME}/"
    assert _decode(policy.fields["policy"]) == {
        "conditions": [
            ["starts-with", "$key", "file"],
            ["content-length-range", 0, 1024],
            {"x-goog-meta-test": "data"},
            {"bucket": BUCKET_NAME},
            {"key": FILE_NAME},
            {"x-goog-date": "20190318T000000Z"},
            {"x-goog-credential": credential},
            {"x-goog-algorithm": "GOOG4-RSA-SHA256"},
        ],
        "expiration": "2019-03-18T00:00:10Z",
    }
    assert policy.fields == {
        "x-goog-meta-test": "data",
        "x-ignore-mykey": "value",
        "key": FILE_NAME,
        "x-goog-date": "20190318T000000Z",
        "x-goog-credential": credential,
        "x-goog-algorithm": "GOOG4-RSA-SHA256",
        "policy": policy.fields["policy"],
        "x-goog-signature": b"signature".hex(),
    }
    assert credential_signer.blobs == [policy.fields["policy"]]


@pytest.mark.asyncio
async def test_v4_policy_is_compact_json(policy_signer):
    policy = await policy_signer.sign_post_policy_v4(
        BUCKET_NAME, FILE_NAME, NOW + timedelta(seconds=10)
    )
    decoded = base64.b64decode(policy.fields["policy"]).decode("utf-8")
    assert decoded.startswith('{"conditions":[{"bucket":"bucket-name"},')


@pytest.mark.asyncio
async def test_v4_policy_escapes_non_ascii(policy_signer):
    policy = await policy_signer.sign_post_policy_v4(
        BUCKET_NAME,
        FILE_NAME,
        NOW + timedelta(seconds=10),
        fields={"x-goog-meta-name": "café"},
    )
    decoded = base64.b64decode(policy.fields["policy"]).decode("ascii")
    assert '"caf\\u00e9"' in decoded


@pytest.mark.asyncio
async def test_v4_policy_virtual_hosted_url(policy_signer):
    policy = await policy_signer.sign_post_policy_v4(
        BUCKET_NAME,
        FILE_NAME,
        NOW + timedelta(seconds=10),
        host_style=HostStyle.VIRTUAL_HOSTED,
    )
    assert policy.url == f"https://{BUCKET_NAME}.storage.googleapis.com/"


@pytest.mark.asyncio
async def test_v4_policy_cname_url(policy_signer):
    policy = await policy_signer.sign_post_policy_v4(
        BUCKET_NAME,
        FILE_NAME,
        NOW + timedelta(seconds=10),
        cname="https://uploads.example.com/",
    )
    assert policy.url == "https://uploads.example.com/"


@pytest.mark.asyncio
async def test_v4_policy_rejects_past_expiration(policy_signer):
    with pytest.raises(ExpirationInPastException):
        await policy_signer.sign_post_policy_v4(BUCKET_NAME, FILE_NAME, NOW - timedelta(seconds=1))


@pytest.mark.asyncio
async def test_v4_policy_rejects_expiration_beyond_seven_days(policy_signer, credential_signer):
    with pytest.raises(ExpirationTooFarException, match="604800"):
        await policy_signer.sign_post_policy_v4(
            BUCKET_NAME, FILE_NAME, NOW + timedelta(days=7, seconds=1)
        )
    assert credential_signer.blobs == []


@pytest.mark.asyncio
@pytest.mark.parametrize("condition", [
    ["starts-with", "$key"],
    ["content-length-range", "0", 10],
    ["unknown", "a", "b"],
    {},
    "starts-with",
])
async def test_v4_policy_rejects_malformed_conditions(policy_signer, condition):
    with pytest.raises(InvalidArgumentException):
        await policy_signer.sign_post_policy_v4(
            BUCKET_NAME, FILE_NAME, NOW + timedelta(seconds=10), conditions=[condition]
        )


@pytest.mark.asyncio
async def test_v2_policy(policy_signer, credential_signer):
    policy = await policy_signer.sign_post_policy_v2(
        BUCKET_NAME,
        FILE_NAME,
        NOW + timedelta(minutes=1),
        equals=["$Content-Type", "image/jpeg"],
        starts_with=[["$key", "file"], ["$x-goog-meta-owner", ""]],
        acl="public-read",
        success_redirect="https://example.com/done",
        success_status="201",
        content_length_range={"min": 0, "max": 1024},
    )

    assert json.loads(policy.string) == {
        "expiration": "2019-03-18T00:01:00.000Z",
        "conditions": [
            ["eq", "$key", FILE_NAME],
            {"bucket": BUCKET_NAME},
            ["eq", "$Content-Type", "image/jpeg"],
            ["starts-with", "$key", "file"],
            ["starts-with", "$x-goog-meta-owner", ""],
            {"acl": "public-read"},
            {"success_action_redirect": "https://example.com/done"},
            {"success_action_status": "201"},
            ["content-length-range", 0, 1024],
        ],
    }
    assert base64.b64decode(policy.base64).decode("utf-8") == policy.string
    assert policy.signature == SIGNATURE
    assert credential_signer.blobs == [policy.base64]


@pytest.mark.asyncio
@pytest.mark.parametrize("options, message", [
    ({"equals": [["$Content-Type"]]}, "Equals condition must be an array of 2 elements."),
    ({"starts_with": ["$key"]}, "StartsWith condition must be an array of 2 elements."),
    ({"content_length_range": {"min": "0", "max": 1}}, "ContentLengthRange must have numeric min & max fields."),
])
async def test_v2_policy_rejects_malformed_options(policy_signer, options, message):
    with pytest.raises(InvalidArgumentException) as exc_info:
        await policy_signer.sign_post_policy_v2(
            BUCKET_NAME, FILE_NAME, NOW + timedelta(minutes=1), **options
        )
    assert str(exc_info.value) == message


@pytest.mark.asyncio
async def test_v2_policy_rejects_invalid_expiration(policy_signer):
    with pytest.raises(ValueError, match="The expiration date provided was invalid."):
        await policy_signer.sign_post_policy_v2(BUCKET_NAME, FILE_NAME, "tomorrow")
