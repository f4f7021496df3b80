from datetime import timedelta
from unittest.mock import AsyncMock
from urllib.parse import urlsplit, parse_qs

import pytest

from storagesigner.client import SigningClient
from storagesigner.error import InvalidArgumentException
from storagesigner.models import HostStyle, SignedUrlResult

from stubs import NOW, NOW_SECONDS, BUCKET_NAME, FILE_NAME, StubCredentialSigner

EXPIRES = NOW + timedelta(seconds=2)


def _query(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def client(credential_signer, clock):
    return SigningClient(credential_signer, clock=clock)


@pytest.mark.asyncio
async def test_read_url(client, credential_signer):
    result = await client.sign_file_url(BUCKET_NAME, FILE_NAME, "read", EXPIRES)

    assert isinstance(result, SignedUrlResult)
    assert result.url.startswith(f"https://storage.googleapis.com/{BUCKET_NAME}/{FILE_NAME}?")
    assert result.expires_at == EXPIRES
    assert credential_signer.blobs[0].startswith("GET\n")


@pytest.mark.asyncio
@pytest.mark.parametrize("action, method", [("write", "PUT"), ("delete", "DELETE")])
async def test_action_maps_to_method(client, credential_signer, action, method):
    await client.sign_file_url(BUCKET_NAME, FILE_NAME, action, EXPIRES)
    assert credential_signer.blobs[0].startswith(f"{method}\n")


@pytest.mark.asyncio
async def test_resumable_signs_resumable_header(client, credential_signer):
    await client.sign_file_url(BUCKET_NAME, FILE_NAME, "resumable", EXPIRES)

    assert credential_signer.blobs[0] == (
        f"POST\n\n\n{NOW_SECONDS + 2}\nx-goog-resumable:start\n/{BUCKET_NAME}/{FILE_NAME}"
    )


@pytest.mark.asyncio
async def test_resumable_v4_signed_headers(client):
    result = await client.sign_file_url(BUCKET_NAME, FILE_NAME, "resumable", EXPIRES, version="v4")
    assert _query(result.url)["X-Goog-SignedHeaders"] == "host;x-goog-resumable"


@pytest.mark.asyncio
async def test_invalid_action(client):
    with pytest.raises(InvalidArgumentException, match="The action is not provided or invalid."):
        await client.sign_file_url(BUCKET_NAME, FILE_NAME, "list", EXPIRES)


@pytest.mark.asyncio
async def test_prompt_save_as(client):
    result = await client.sign_file_url(
        BUCKET_NAME, FILE_NAME, "read", EXPIRES, prompt_save_as="photo.png"
    )
    assert "response-content-disposition=attachment%3B%20filename%3D%22photo.png%22" in result.url


@pytest.mark.asyncio
async def test_response_disposition_overrides_prompt_save_as(client):
    result = await client.sign_file_url(
        BUCKET_NAME,
        FILE_NAME,
        "read",
        EXPIRES,
        version="v4",
        prompt_save_as="photo.png",
        response_disposition="inline",
        response_type="image/png",
    )

    query = _query(result.url)
    assert query["response-content-disposition"] == "inline"
    assert query["response-content-type"] == "image/png"


@pytest.mark.asyncio
async def test_list_bucket_url(client, credential_signer):
    result = await client.sign_bucket_url(BUCKET_NAME, EXPIRES)

    assert result.url.startswith(f"https://storage.googleapis.com/{BUCKET_NAME}?")
    assert credential_signer.blobs[0].endswith(f"\n/{BUCKET_NAME}")


@pytest.mark.asyncio
async def test_bucket_url_rejects_file_actions(client):
    with pytest.raises(InvalidArgumentException):
        await client.sign_bucket_url(BUCKET_NAME, EXPIRES, action="read")


@pytest.mark.asyncio
async def test_virtual_hosted_client(credential_signer, clock):
    client = SigningClient(credential_signer, virtual_hosted_style=True, clock=clock)

    result = await client.sign_bucket_url(BUCKET_NAME, EXPIRES, version="v4")

    assert client.host_style is HostStyle.VIRTUAL_HOSTED
    assert result.url.startswith(f"https://{BUCKET_NAME}.storage.googleapis.com/?")


@pytest.mark.asyncio
async def test_cname_client(credential_signer, clock):
    client = SigningClient(
        credential_signer,
        cname="https://cdn.example.com",
        virtual_hosted_style=True,
        clock=clock,
    )

    url_result = await client.sign_file_url(BUCKET_NAME, FILE_NAME, "read", EXPIRES)
    policy = await client.sign_post_policy_v4(BUCKET_NAME, FILE_NAME, EXPIRES)

    assert client.host_style is HostStyle.CNAME
    assert url_result.url.startswith(f"https://cdn.example.com/{FILE_NAME}?")
    assert policy.url == "https://cdn.example.com/"


@pytest.mark.asyncio
async def test_default_version(credential_signer, clock):
    client = SigningClient(credential_signer, default_version="v4", clock=clock)
    result = await client.sign_file_url(BUCKET_NAME, FILE_NAME, "read", EXPIRES)
    assert "X-Goog-Signature=" in result.url


@pytest.mark.asyncio
async def test_post_policy_v2(client):
    policy = await client.sign_post_policy_v2(
        BUCKET_NAME, FILE_NAME, EXPIRES, content_length_range={"min": 0, "max": 10}
    )
    assert '["content-length-range",0,10]' in policy.string


@pytest.mark.asyncio
async def test_close_closes_credential_signer(clock):
    credential_signer = StubCredentialSigner()
    credential_signer.close = AsyncMock()

    async with SigningClient(credential_signer, clock=clock):
        pass

    credential_signer.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_without_closable_signer(client):
    await client.close()
