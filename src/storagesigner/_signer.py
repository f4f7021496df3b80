"""
V2 and V4 signed URL generation for Cloud Storage
"""

import base64
import binascii
import hashlib
import logging
from datetime import datetime, UTC
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

from ._canonical import (
    encode_uri,
    canonical_headers,
    canonical_query_params,
    canonical_request,
    check_content_sha256,
    lowercase_headers,
    resource_path,
    signed_header_names,
)
from ._expiry import (
    to_datetime,
    parse_expires,
    expiration_seconds,
    parse_accessible_at,
    check_accessible_before_expiry,
    v4_expires_in,
    goog_date,
)
from .credentials import CredentialSigner
from .error import InvalidArgumentException, SigningError
from .models import CredentialScope, HostStyle, SigningConfig

PATH_STYLED_HOST = "https://storage.googleapis.com"
DEFAULT_SIGNING_VERSION = "v2"
SUPPORTED_VERSIONS = ("v2", "v4")
V4_ALGORITHM = "GOOG4-RSA-SHA256"

V2_RESERVED_PARAMS = frozenset({"googleaccessid", "expires", "signature"})
V4_RESERVED_PARAMS = frozenset({
    "x-goog-algorithm",
    "x-goog-credential",
    "x-goog-date",
    "x-goog-expires",
    "x-goog-signedheaders",
    "x-goog-signature",
})

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def resolve_origin(bucket: str, host_style: HostStyle, cname: Optional[str]) -> str:
    """
    Scheme and host a signed resource is addressed through.

    A cname takes precedence over virtual-hosted style.
    """
    if cname:
        parsed = urlparse(cname)
        if not parsed.scheme or not parsed.netloc:
            raise InvalidArgumentException(
                f"The cname '{cname}' must be an absolute URL such as 'https://cdn.example.com'."
            )
        return cname.rstrip("/")
    if host_style is HostStyle.CNAME:
        raise InvalidArgumentException("A cname is required for the CNAME host style.")
    if host_style is HostStyle.VIRTUAL_HOSTED:
        return f"https://{bucket}.storage.googleapis.com"
    return PATH_STYLED_HOST


async def sign_blob(credential_signer: CredentialSigner, blob: str) -> str:
    """Have the credential signer sign ``blob``, wrapping any failure."""
    try:
        return await credential_signer.sign(blob.encode("utf-8"))
    except Exception as err:
        raise SigningError(str(err)) from err


def signature_to_hex(signature: str) -> str:
    """Re-encode a base64 signature as lowercase hex."""
    try:
        return base64.b64decode(signature, validate=True).hex()
    except (binascii.Error, ValueError) as err:
        raise SigningError("The credential signer returned a signature that is not valid base64.") from err


class URLSigner:
    """
    Produces V2 and V4 signed URLs.

    The signer keeps no state between calls; the only I/O is one call to
    the credential signer per URL.

    Example:
        signer = URLSigner(ServiceAccountSigner.from_service_account_file("key.json"))
        url = await signer.get_signed_url(SigningConfig(
            method="GET",
            bucket="photos",
            object_name="archive/image.jpg",
            expires=datetime.now(UTC) + timedelta(hours=1),
            version="v4",
        ))
    """
    
    def __init__(self, credential_signer: CredentialSigner, clock: Optional[Clock] = None):
        self.credential_signer = credential_signer
        self._clock = clock or utc_now
        self._logger = logging.getLogger(__name__)
    
    async def get_signed_url(self, config: SigningConfig) -> str:
        """
        Sign ``config`` and return the complete URL.

        Every validation error is raised before the credential signer is
        called.
        """
        version = config.version if config.version is not None else DEFAULT_SIGNING_VERSION
        if version not in SUPPORTED_VERSIONS:
            raise InvalidArgumentException(
                f"Invalid signed URL version: {version}. Supported versions are 'v2' and 'v4'."
            )
        self._validate_config(config, version)

        now = to_datetime(self._clock())
        expires_at = parse_expires(config.expires, now)
        accessible_at = parse_accessible_at(config.accessible_at, now)
        check_accessible_before_expiry(accessible_at, expires_at)
        expiration = expiration_seconds(expires_at, now)

        origin = resolve_origin(config.bucket, config.host_style, config.cname)
        is_cname = origin != PATH_STYLED_HOST
        encoded_object = encode_uri(config.object_name, False) if config.object_name else None

        if version == "v4":
            query = await self._sign_v4(config, origin, encoded_object, expiration, accessible_at)
        else:
            query = await self._sign_v2(config, is_cname, encoded_object, expiration)
            query.update(config.query_params)

        path = resource_path(is_cname, config.bucket, encoded_object)
        url = f"{origin}{path}?{canonical_query_params(query)}"

        self._logger.info(
            "[StorageSigner][SignedUrl] version=%s host=%s expires=%s bucket=%s object=%s",
            version,
            urlparse(origin).netloc,
            expiration,
            config.bucket,
            config.object_name,
        )
        return url
    
    def _validate_config(self, config: SigningConfig, version: str) -> None:
        if not config.method:
            raise InvalidArgumentException("An HTTP method is required to sign a URL.")
        if not config.bucket:
            raise InvalidArgumentException("A bucket name is required to sign a URL.")
        if config.object_name is not None and config.object_name == "":
            raise InvalidArgumentException("An object name cannot be an empty string.")

        reserved = V4_RESERVED_PARAMS if version == "v4" else V2_RESERVED_PARAMS
        for key in config.query_params:
            if key.lower() in reserved:
                raise InvalidArgumentException(
                    f"The query parameter '{key}' is reserved for {version} signed URLs."
                )
    
    async def _sign_v2(
        self,
        config: SigningConfig,
        is_cname: bool,
        encoded_object: Optional[str],
        expiration: int,
    ) -> Dict[str, object]:
        """Sign with the legacy V2 scheme and return its query parameters."""
        blob_to_sign = "\n".join([
            config.method,
            config.content_md5 or "",
            config.content_type or "",
            str(expiration),
            canonical_headers(config.extension_headers)
            + resource_path(is_cname, config.bucket, encoded_object),
        ])
        self._logger.debug("[StorageSigner][V2] stringToSign=%r", blob_to_sign)

        signature = await sign_blob(self.credential_signer, blob_to_sign)

        return {
            "GoogleAccessId": self.credential_signer.get_account_email(),
            "Expires": expiration,
            "Signature": signature,
        }
    
    async def _sign_v4(
        self,
        config: SigningConfig,
        origin: str,
        encoded_object: Optional[str],
        expiration: int,
        accessible_at: datetime,
    ) -> Dict[str, object]:
        """Sign with the V4 scheme and return its query parameters."""
        expires_in = v4_expires_in(expiration, accessible_at)

        headers = lowercase_headers(config.extension_headers)
        headers["host"] = urlparse(origin).netloc
        if config.content_md5:
            headers["content-md5"] = config.content_md5
        if config.content_type:
            headers["content-type"] = config.content_type

        content_sha256 = headers.get("x-goog-content-sha256")
        if content_sha256 is not None:
            check_content_sha256(content_sha256)

        signed_headers = signed_header_names(headers)
        scope = CredentialScope.for_instant(accessible_at)
        x_goog_date = goog_date(accessible_at)

        query: Dict[str, object] = {
            "X-Goog-Algorithm": V4_ALGORITHM,
            "X-Goog-Credential": f"{self.credential_signer.get_account_email()}/{scope}",
            "X-Goog-Date": x_goog_date,
            "X-Goog-Expires": str(expires_in),
            "X-Goog-SignedHeaders": signed_headers,
        }
        query.update(config.query_params)

        request = canonical_request(
            config.method,
            resource_path(origin != PATH_STYLED_HOST, config.bucket, encoded_object),
            canonical_query_params(query),
            canonical_headers(headers),
            signed_headers,
            content_sha256,
        )
        canonical_request_hash = hashlib.sha256(request.encode("utf-8")).hexdigest()

        blob_to_sign = "\n".join([
            V4_ALGORITHM,
            x_goog_date,
            str(scope),
            canonical_request_hash,
        ])
        self._logger.debug(
            "[StorageSigner][V4] canonicalRequest=%r stringToSign=%r",
            request,
            blob_to_sign,
        )

        signature = await sign_blob(self.credential_signer, blob_to_sign)
        query["X-Goog-Signature"] = signature_to_hex(signature)
        return query
