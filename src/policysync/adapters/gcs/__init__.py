"""Cloud Storage bucket IAM adapter package."""

from __future__ import annotations

from .client import GcsPolicyTransport, bucket_iam_path
from .schema import BindingPayload, ConditionPayload, PolicyPayload
from .translator import parse_policy, serialize_policy, translate_policy

__all__ = [
    "BindingPayload",
    "ConditionPayload",
    "GcsPolicyTransport",
    "PolicyPayload",
    "bucket_iam_path",
    "parse_policy",
    "serialize_policy",
    "translate_policy",
]
