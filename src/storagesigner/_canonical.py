"""
Canonical forms of headers, query strings and resource paths
"""

import re
from typing import Dict, Mapping, Optional, Union, Iterable
from urllib.parse import quote

from .error import InvalidArgumentException
from .models import CanonicalRequest

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

_WHITESPACE_RUN = re.compile(r"\s+")
_SHA256_HEX = re.compile(r"[A-Fa-f0-9]{64}")


def encode_uri(value: str, encode_slash: bool, safe: str = "") -> str:
    """
    Percent-encode ``value`` leaving only ``A-Za-z0-9-_.~`` unescaped.

    ``!*'()`` are escaped as well. Path encoding (``encode_slash=False``)
    keeps ``/`` so object names stay segmented; extra characters can be
    allowed through ``safe``.
    """
    if not encode_slash:
        safe = "/" + safe
    return quote(str(value), safe=safe)


def _canonical_value(value: Union[str, Iterable[str]]) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(_canonical_value(v) for v in value)
    return _WHITESPACE_RUN.sub(" ", str(value).strip())


def lowercase_headers(headers: Mapping[str, object]) -> Dict[str, object]:
    """
    Lower-case header names, dropping headers without a value.

    Names that differ only in case are merged into one header whose values
    keep their input order.
    """
    lowered: Dict[str, object] = {}
    for name, value in headers.items():
        if value is None:
            continue
        key = name.lower()
        if key not in lowered:
            lowered[key] = value
            continue
        previous = lowered[key]
        merged = list(previous) if isinstance(previous, (list, tuple)) else [previous]
        merged.extend(value if isinstance(value, (list, tuple)) else [value])
        lowered[key] = merged
    return lowered


def canonical_headers(headers: Mapping[str, object]) -> str:
    """Render headers as sorted ``name:value\\n`` lines."""
    lowered = lowercase_headers(headers)
    return "".join(
        f"{name}:{_canonical_value(lowered[name])}\n"
        for name in sorted(lowered)
    )


def signed_header_names(headers: Mapping[str, object]) -> str:
    """Sorted, lower-cased, semicolon-joined header names."""
    return ";".join(sorted(lowercase_headers(headers)))


def canonical_query_params(params: Mapping[str, object]) -> str:
    """Strictly encode each key and value and join them sorted by key."""
    return "&".join(
        f"{encode_uri(key, True)}={encode_uri(params[key], True)}"
        for key in sorted(params)
    )


def canonical_request(
    method: str,
    path: str,
    query: str,
    headers: str,
    signed_headers: str,
    payload_hash: Optional[str] = None,
) -> str:
    """Newline-join the six parts of a V4 canonical request."""
    if payload_hash is None:
        payload_hash = UNSIGNED_PAYLOAD
    else:
        check_content_sha256(payload_hash)
    return str(CanonicalRequest(method, path, query, headers, signed_headers, payload_hash))


def check_content_sha256(value: object) -> None:
    if not isinstance(value, str) or not _SHA256_HEX.fullmatch(value):
        raise InvalidArgumentException(
            "The header X-Goog-Content-SHA256 must be a hexadecimal string."
        )


def resource_path(cname: bool, bucket: str, object_name: Optional[str] = None) -> str:
    """
    Path of the signed resource.

    When a cname or virtual host already names the bucket only the object
    is kept in the path.
    """
    if cname:
        return f"/{object_name or ''}"
    if object_name:
        return f"/{bucket}/{object_name}"
    return f"/{bucket}"
