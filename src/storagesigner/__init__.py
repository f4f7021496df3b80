"""
storage-signer - signed URLs and POST policies for Cloud Storage
"""

__version__ = "1.0.0"

from .client import SigningClient
from ._signer import URLSigner, PATH_STYLED_HOST, DEFAULT_SIGNING_VERSION
from ._policy import PolicySigner
from ._expiry import SEVEN_DAYS
from .credentials import CredentialSigner, ServiceAccountSigner, IamSignBlobSigner
from .models import (
    HostStyle,
    SigningConfig,
    CredentialScope,
    CanonicalRequest,
    SignedUrlResult,
    PolicyDocument,
    PolicyV2Result,
)
from .error import (
    SignerException,
    InvalidArgumentException,
    InvalidDateException,
    ExpirationInPastException,
    AccessibleAtAfterExpirationException,
    ExpirationTooFarException,
    SigningError,
    CredentialException,
)

__all__ = [
    "SigningClient",
    "URLSigner",
    "PolicySigner",
    "PATH_STYLED_HOST",
    "DEFAULT_SIGNING_VERSION",
    "SEVEN_DAYS",
    "CredentialSigner",
    "ServiceAccountSigner",
    "IamSignBlobSigner",
    "HostStyle",
    "SigningConfig",
    "CredentialScope",
    "CanonicalRequest",
    "SignedUrlResult",
    "PolicyDocument",
    "PolicyV2Result",
    "SignerException",
    "InvalidArgumentException",
    "InvalidDateException",
    "ExpirationInPastException",
    "AccessibleAtAfterExpirationException",
    "ExpirationTooFarException",
    "SigningError",
    "CredentialException",
]
