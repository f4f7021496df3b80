"""
Signed POST policies for direct browser uploads
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ._expiry import (
    SEVEN_DAYS,
    to_datetime,
    goog_date,
    policy_expiration,
    iso_expiration,
)
from ._signer import (
    PATH_STYLED_HOST,
    V4_ALGORITHM,
    Clock,
    utc_now,
    resolve_origin,
    sign_blob,
    signature_to_hex,
)
from .credentials import CredentialSigner
from .error import (
    InvalidArgumentException,
    ExpirationInPastException,
    ExpirationTooFarException,
)
from .models import (
    CredentialScope,
    ExpiresInput,
    HostStyle,
    PolicyDocument,
    PolicyV2Result,
)

EQUALS_MESSAGE = "Equals condition must be an array of 2 elements."
STARTS_WITH_MESSAGE = "StartsWith condition must be an array of 2 elements."
CONTENT_LENGTH_RANGE_MESSAGE = "ContentLengthRange must have numeric min & max fields."


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_condition(condition: Any) -> Any:
    """Validate one V4 policy condition and return it in JSON-ready form."""
    if isinstance(condition, dict):
        if not condition:
            raise InvalidArgumentException("An exact-match policy condition cannot be empty.")
        return dict(condition)

    if isinstance(condition, (list, tuple)) and condition:
        operator = condition[0]
        if operator in ("eq", "starts-with") and len(condition) == 3:
            return list(condition)
        if (
            operator == "content-length-range"
            and len(condition) == 3
            and _is_integer(condition[1])
            and _is_integer(condition[2])
        ):
            return list(condition)

    raise InvalidArgumentException(f"Unsupported policy condition: {condition!r}")


def _condition_pairs(value: Optional[Sequence], message: str) -> List[List[Any]]:
    """Accept one ``[field, value]`` pair or a list of them."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidArgumentException(message)
    pairs = value if value and isinstance(value[0], (list, tuple)) else [value]
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise InvalidArgumentException(message)
    return [list(pair) for pair in pairs]


class PolicySigner:
    """
    Builds and signs POST policy documents.

    A third party holding no credentials can submit the returned fields as a
    multipart form to upload one object under the policy's conditions.
    """

    def __init__(self, credential_signer: CredentialSigner, clock: Optional[Clock] = None):
        self.credential_signer = credential_signer
        self._clock = clock or utc_now
        self._logger = logging.getLogger(__name__)

    async def sign_post_policy_v4(
        self,
        bucket: str,
        object_name: str,
        expires: ExpiresInput,
        conditions: Optional[List[Any]] = None,
        fields: Optional[Dict[str, str]] = None,
        host_style: HostStyle = HostStyle.PATH,
        cname: Optional[str] = None,
    ) -> PolicyDocument:
        """
        Sign a V4 POST policy.

        Args:
            bucket: Bucket receiving the upload
            object_name: Object key the form will create
            expires: Datetime, epoch milliseconds or ISO-8601 string
            conditions: Extra conditions: ``{field: value}`` dicts,
                ``["eq", field, value]``, ``["starts-with", field, prefix]``
                or ``["content-length-range", min, max]``
            fields: Extra form fields; those starting with ``x-ignore-`` are
                not added to the policy conditions
            host_style: Path or virtual-hosted addressing
            cname: Custom origin; takes precedence over ``host_style``
        """
        if not bucket:
            raise InvalidArgumentException("A bucket name is required to sign a policy.")
        if not object_name:
            raise InvalidArgumentException("An object name is required to sign a policy.")

        now = to_datetime(self._clock())
        expires_at = to_datetime(expires)
        if expires_at <= now:
            raise ExpirationInPastException()
        if (expires_at - now).total_seconds() > SEVEN_DAYS:
            raise ExpirationTooFarException(SEVEN_DAYS)

        policy_conditions = [_check_condition(c) for c in (conditions or [])]
        origin = resolve_origin(bucket, host_style, cname)
        scope = CredentialScope.for_instant(now)

        policy_fields: Dict[str, str] = {
            **(fields or {}),
            "bucket": bucket,
            "key": object_name,
            "x-goog-date": goog_date(now),
            "x-goog-credential": f"{self.credential_signer.get_account_email()}/{scope}",
            "x-goog-algorithm": V4_ALGORITHM,
        }
        for key, value in policy_fields.items():
            if not key.startswith("x-ignore-"):
                policy_conditions.append({key: value})
        del policy_fields["bucket"]

        policy = {
            "conditions": policy_conditions,
            "expiration": policy_expiration(expires_at),
        }
        # Non-ASCII characters are sent as \uXXXX escapes.
        policy_string = json.dumps(policy, separators=(",", ":"), ensure_ascii=True)
        policy_base64 = base64.b64encode(policy_string.encode("utf-8")).decode("ascii")

        signature = await sign_blob(self.credential_signer, policy_base64)

        policy_fields["policy"] = policy_base64
        policy_fields["x-goog-signature"] = signature_to_hex(signature)

        if origin == PATH_STYLED_HOST:
            url = f"{origin}/{bucket}/"
        else:
            url = f"{origin}/"

        self._logger.info(
            "[StorageSigner][PostPolicy] version=v4 url=%s expiration=%s bucket=%s object=%s",
            url,
            policy["expiration"],
            bucket,
            object_name,
        )

        return PolicyDocument(url=url, fields=policy_fields)

    async def sign_post_policy_v2(
        self,
        bucket: str,
        object_name: str,
        expires: ExpiresInput,
        equals: Optional[Sequence] = None,
        starts_with: Optional[Sequence] = None,
        acl: Optional[str] = None,
        success_redirect: Optional[str] = None,
        success_status: Optional[str] = None,
        content_length_range: Optional[Dict[str, int]] = None,
    ) -> PolicyV2Result:
        """Sign a legacy V2 POST policy."""
        if not bucket:
            raise InvalidArgumentException("A bucket name is required to sign a policy.")
        if not object_name:
            raise InvalidArgumentException("An object name is required to sign a policy.")

        now = to_datetime(self._clock())
        expires_at = to_datetime(expires)
        if expires_at <= now:
            raise ExpirationInPastException()

        conditions: List[Any] = [
            ["eq", "$key", object_name],
            {"bucket": bucket},
        ]
        for pair in _condition_pairs(equals, EQUALS_MESSAGE):
            conditions.append(["eq", *pair])
        for pair in _condition_pairs(starts_with, STARTS_WITH_MESSAGE):
            conditions.append(["starts-with", *pair])
        if acl:
            conditions.append({"acl": acl})
        if success_redirect:
            conditions.append({"success_action_redirect": success_redirect})
        if success_status:
            conditions.append({"success_action_status": success_status})
        if content_length_range is not None:
            min_length = content_length_range.get("min")
            max_length = content_length_range.get("max")
            if not _is_integer(min_length) or not _is_integer(max_length):
                raise InvalidArgumentException(CONTENT_LENGTH_RANGE_MESSAGE)
            conditions.append(["content-length-range", min_length, max_length])

        policy = {
            "expiration": iso_expiration(expires_at),
            "conditions": conditions,
        }
        policy_string = json.dumps(policy, separators=(",", ":"), ensure_ascii=False)
        policy_base64 = base64.b64encode(policy_string.encode("utf-8")).decode("ascii")

        signature = await sign_blob(self.credential_signer, policy_base64)

        self._logger.info(
            "[StorageSigner][PostPolicy] version=v2 expiration=%s bucket=%s object=%s",
            policy["expiration"],
            bucket,
            object_name,
        )

        return PolicyV2Result(string=policy_string, base64=policy_base64, signature=signature)
