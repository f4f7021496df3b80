"""
Data models for the storage URL signer
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Union

# A datetime, epoch milliseconds, or an ISO-8601 string.
ExpiresInput = Union[datetime, int, float, str]

HeaderValue = Union[str, List[str]]


class HostStyle(Enum):
    """How the bucket is addressed in a signed URL."""
    PATH = "PATH"
    VIRTUAL_HOSTED = "VIRTUAL_HOSTED"
    CNAME = "CNAME"


@dataclass
class SigningConfig:
    """Everything needed to sign one URL."""
    method: str
    bucket: str
    expires: ExpiresInput
    object_name: Optional[str] = None
    accessible_at: Optional[ExpiresInput] = None
    content_md5: Optional[str] = None
    content_type: Optional[str] = None
    extension_headers: Dict[str, HeaderValue] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    version: Optional[str] = None
    host_style: HostStyle = HostStyle.PATH
    cname: Optional[str] = None


@dataclass(frozen=True)
class CredentialScope:
    """Binds a V4 signature to a day, region and service."""
    date_stamp: str
    region: str = "auto"
    service: str = "storage"
    request_type: str = "goog4_request"

    @classmethod
    def for_instant(cls, instant: datetime) -> "CredentialScope":
        return cls(date_stamp=instant.strftime("%Y%m%d"))

    def __str__(self) -> str:
        return f"{self.date_stamp}/{self.region}/{self.service}/{self.request_type}"


@dataclass(frozen=True)
class CanonicalRequest:
    """The V4 canonical request that is hashed into the string-to-sign."""
    method: str
    path: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    def __str__(self) -> str:
        return "\n".join([
            self.method,
            self.path,
            self.query,
            self.headers,
            self.signed_headers,
            self.payload_hash,
        ])


@dataclass
class SignedUrlResult:
    """Represents a signed URL response."""
    url: str
    expires_at: datetime


@dataclass
class PolicyDocument:
    """Represents a V4 POST policy: the form action URL and its fields."""
    url: str
    fields: Dict[str, str] = field(default_factory=dict)


@dataclass
class PolicyV2Result:
    """Represents a V2 POST policy."""
    string: str
    base64: str
    signature: str
