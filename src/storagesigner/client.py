"""
SigningClient - signed URLs and POST policies for Cloud Storage resources
"""

from typing import Optional, Dict, List, Any, Sequence

from ._expiry import to_datetime
from ._policy import PolicySigner
from ._signer import URLSigner, Clock, DEFAULT_SIGNING_VERSION
from .credentials import CredentialSigner
from .error import InvalidArgumentException
from .models import (
    ExpiresInput,
    HostStyle,
    HeaderValue,
    SigningConfig,
    SignedUrlResult,
    PolicyDocument,
    PolicyV2Result,
)

FILE_ACTIONS = {
    "read": "GET",
    "write": "PUT",
    "delete": "DELETE",
    "resumable": "POST",
}

BUCKET_ACTIONS = {
    "list": "GET",
}


class SigningClient:
    """
    Signs access to files and buckets on behalf of a service account.

    Example:
        client = SigningClient(
            ServiceAccountSigner.from_service_account_file("key.json"),
            virtual_hosted_style=True,
        )

        # Let a browser download a file for the next hour
        result = await client.sign_file_url(
            bucket_name="photos",
            object_name="archive/camera-001/image.jpg",
            action="read",
            expires=datetime.now(UTC) + timedelta(hours=1),
            version="v4",
        )
    """

    def __init__(
        self,
        credential_signer: CredentialSigner,
        cname: Optional[str] = None,
        virtual_hosted_style: bool = False,
        default_version: str = DEFAULT_SIGNING_VERSION,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize SigningClient.

        Args:
            credential_signer: Signs blobs for the service account
            cname: Custom origin (e.g. "https://cdn.example.com") used instead of
                the storage host; takes precedence over virtual_hosted_style
            virtual_hosted_style: Address buckets as "{bucket}.storage.googleapis.com"
            default_version: Signing version used when a call does not give one
            clock: Zero-argument callable returning the current aware datetime
        """
        self.credential_signer = credential_signer
        self.cname = cname
        self.virtual_hosted_style = virtual_hosted_style
        self.default_version = default_version

        self._url_signer = URLSigner(credential_signer, clock=clock)
        self._policy_signer = PolicySigner(credential_signer, clock=clock)

    @property
    def host_style(self) -> HostStyle:
        if self.cname:
            return HostStyle.CNAME
        if self.virtual_hosted_style:
            return HostStyle.VIRTUAL_HOSTED
        return HostStyle.PATH

    @staticmethod
    def _response_params(
        response_type: Optional[str],
        prompt_save_as: Optional[str],
        response_disposition: Optional[str],
    ) -> Dict[str, str]:
        query_params: Dict[str, str] = {}
        if response_type:
            query_params["response-content-type"] = response_type
        if prompt_save_as:
            query_params["response-content-disposition"] = (
                f'attachment; filename="{prompt_save_as}"'
            )
        if response_disposition:
            query_params["response-content-disposition"] = response_disposition
        return query_params

    async def _sign(self, config: SigningConfig) -> SignedUrlResult:
        url = await self._url_signer.get_signed_url(config)
        return SignedUrlResult(url=url, expires_at=to_datetime(config.expires))

    async def sign_file_url(
        self,
        bucket_name: str,
        object_name: str,
        action: str,
        expires: ExpiresInput,
        version: Optional[str] = None,
        accessible_at: Optional[ExpiresInput] = None,
        content_md5: Optional[str] = None,
        content_type: Optional[str] = None,
        extension_headers: Optional[Dict[str, HeaderValue]] = None,
        query_params: Optional[Dict[str, str]] = None,
        response_type: Optional[str] = None,
        prompt_save_as: Optional[str] = None,
        response_disposition: Optional[str] = None,
    ) -> SignedUrlResult:
        """
        Generate a signed URL for one object.

        ``action`` is one of "read", "write", "delete" or "resumable". A
        resumable URL starts a resumable upload session and signs the
        ``x-goog-resumable: start`` header the uploader must send.
        """
        method = FILE_ACTIONS.get(action)
        if method is None:
            raise InvalidArgumentException("The action is not provided or invalid.")

        headers = dict(extension_headers or {})
        if action == "resumable":
            headers["x-goog-resumable"] = "start"

        params = dict(query_params or {})
        params.update(self._response_params(response_type, prompt_save_as, response_disposition))

        config = SigningConfig(
            method=method,
            bucket=bucket_name,
            object_name=object_name,
            expires=expires,
            accessible_at=accessible_at,
            content_md5=content_md5,
            content_type=content_type,
            extension_headers=headers,
            query_params=params,
            version=version or self.default_version,
            host_style=self.host_style,
            cname=self.cname,
        )
        return await self._sign(config)

    async def sign_bucket_url(
        self,
        bucket_name: str,
        expires: ExpiresInput,
        action: str = "list",
        version: Optional[str] = None,
        accessible_at: Optional[ExpiresInput] = None,
        extension_headers: Optional[Dict[str, HeaderValue]] = None,
        query_params: Optional[Dict[str, str]] = None,
    ) -> SignedUrlResult:
        """Generate a signed URL for a bucket-level operation (listing)."""
        method = BUCKET_ACTIONS.get(action)
        if method is None:
            raise InvalidArgumentException("The action is not provided or invalid.")

        config = SigningConfig(
            method=method,
            bucket=bucket_name,
            expires=expires,
            accessible_at=accessible_at,
            extension_headers=dict(extension_headers or {}),
            query_params=dict(query_params or {}),
            version=version or self.default_version,
            host_style=self.host_style,
            cname=self.cname,
        )
        return await self._sign(config)

    async def sign_post_policy_v4(
        self,
        bucket_name: str,
        object_name: str,
        expires: ExpiresInput,
        conditions: Optional[List[Any]] = None,
        fields: Optional[Dict[str, str]] = None,
    ) -> PolicyDocument:
        """Generate a V4 POST policy for a direct browser upload."""
        return await self._policy_signer.sign_post_policy_v4(
            bucket=bucket_name,
            object_name=object_name,
            expires=expires,
            conditions=conditions,
            fields=fields,
            host_style=self.host_style,
            cname=self.cname,
        )

    async def sign_post_policy_v2(
        self,
        bucket_name: str,
        object_name: str,
        expires: ExpiresInput,
        equals: Optional[Sequence] = None,
        starts_with: Optional[Sequence] = None,
        acl: Optional[str] = None,
        success_redirect: Optional[str] = None,
        success_status: Optional[str] = None,
        content_length_range: Optional[Dict[str, int]] = None,
    ) -> PolicyV2Result:
        """Generate a legacy V2 POST policy."""
        return await self._policy_signer.sign_post_policy_v2(
            bucket=bucket_name,
            object_name=object_name,
            expires=expires,
            equals=equals,
            starts_with=starts_with,
            acl=acl,
            success_redirect=success_redirect,
            success_status=success_status,
            content_length_range=content_length_range,
        )

    async def close(self) -> None:
        """Release the credential signer's resources, if it holds any."""
        close = getattr(self.credential_signer, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
