"""
Credential signers: the only collaborator the URL signer talks to.

A credential signer produces an RSA-SHA256 signature over a blob and knows
the service account email the signature belongs to. ``sign`` must return the
signature base64-encoded; the URL and policy signers decode it themselves.
"""

import base64
import json
import logging
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ._http import HttpClient
from .error import CredentialException

IAM_SIGN_BLOB_URL = (
    "https://iamcredentials.googleapis.com/v1/projects/-/serviceAccounts/{email}:signBlob"
)

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialSigner(Protocol):
    """Signs blobs on behalf of a service account."""

    async def sign(self, blob: bytes) -> str:
        """Return the base64-encoded RSA-SHA256 signature of ``blob``."""
        ...

    def get_account_email(self) -> str:
        ...


class ServiceAccountSigner:
    """
    Signs with a service account private key held in process.

    Example:
        signer = ServiceAccountSigner.from_service_account_file("key.json")
        url = await URLSigner(signer).get_signed_url(config)
    """

    def __init__(self, client_email: str, private_key: rsa.RSAPrivateKey):
        if not client_email:
            raise CredentialException("A service account email is required for signing.")
        self.client_email = client_email
        self._private_key = private_key

    @classmethod
    def from_service_account_info(cls, info: dict) -> "ServiceAccountSigner":
        """Build a signer from a parsed service account JSON key."""
        client_email = info.get("client_email")
        private_key_pem = info.get("private_key")
        if not client_email or not private_key_pem:
            raise CredentialException(
                "Service account info must contain 'client_email' and 'private_key'."
            )

        try:
            private_key = serialization.load_pem_private_key(
                private_key_pem.encode("utf-8"),
                password=None,
            )
        except (TypeError, ValueError) as ex:
            raise CredentialException(f"Failed to load service account private key: {ex}") from ex

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise CredentialException("Service account private key must be an RSA key.")

        return cls(client_email, private_key)

    @classmethod
    def from_service_account_file(cls, path: str) -> "ServiceAccountSigner":
        """Build a signer from a service account JSON key file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                info = json.load(f)
        except (OSError, ValueError) as ex:
            raise CredentialException(f"Failed to read service account file '{path}': {ex}") from ex
        return cls.from_service_account_info(info)

    async def sign(self, blob: bytes) -> str:
        signature = self._private_key.sign(blob, padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(signature).decode("ascii")

    def get_account_email(self) -> str:
        return self.client_email


class IamSignBlobSigner:
    """
    Signs remotely through the IAM Credentials ``signBlob`` API, so the
    private key never leaves Google's infrastructure.

    The caller supplies an access token already authorized for
    ``iam.serviceAccounts.signBlob``; this class does not obtain or refresh it.
    """

    def __init__(
        self,
        service_account_email: str,
        access_token: str,
        request_timeout: int = 30,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not service_account_email:
            raise CredentialException("A service account email is required for signing.")
        self.service_account_email = service_account_email
        self.access_token = access_token
        self._http = HttpClient(
            access_token,
            timeout=request_timeout,
            max_retries=max_retries,
            transport=transport,
        )

    async def sign(self, blob: bytes) -> str:
        url = IAM_SIGN_BLOB_URL.format(email=quote(self.service_account_email, safe="@"))
        payload = {"payload": base64.b64encode(blob).decode("ascii")}

        response = await self._http.post_json(url, payload)

        if response.status_code >= 400:
            logger.warning(
                "[StorageSigner][SignBlob] status=%s account=%s",
                response.status_code,
                self.service_account_email,
            )
            raise CredentialException(
                f"signBlob request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            signed_blob = response.json().get("signedBlob")
        except ValueError as ex:
            raise CredentialException(f"Failed to parse signBlob response. {ex}") from ex

        if not signed_blob:
            raise CredentialException("No signedBlob in signBlob response.")

        return signed_blob

    def get_account_email(self) -> str:
        return self.service_account_email

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
