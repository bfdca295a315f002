"""Webhook request signature verification.

Messenger signs every webhook call with an HMAC of the raw request body,
keyed with the app secret, and sends it as ``X-Hub-Signature: sha1=<hex>``.
The check must run over the bytes exactly as received, before JSON parsing.

https://developers.facebook.com/docs/graph-api/webhooks#setup
"""

import hashlib
import hmac

import logfire

SUPPORTED_METHODS = {"sha1": hashlib.sha1}


class SignatureError(Exception):
    """Raised when a webhook request signature is missing or invalid."""

    pass


def compute_signature(body: bytes, app_secret: str, method: str = "sha1") -> str:
    """Return the ``X-Hub-Signature`` header value for ``body``."""
    digest = hmac.new(
        app_secret.encode("utf-8"),
        body,
        SUPPORTED_METHODS[method],
    ).hexdigest()
    return f"{method}={digest}"


def verify_request_signature(
    body: bytes,
    signature_header: str | None,
    app_secret: str,
    *,
    allow_unsigned: bool = False,
) -> None:
    """
    Verify that ``body`` was signed by Messenger with ``app_secret``.

    Args:
        body: Raw request body bytes
        signature_header: ``X-Hub-Signature`` header value, if any
        app_secret: Facebook App secret
        allow_unsigned: Let requests without a header through (testing only)

    Raises:
        SignatureError: header missing (unless allowed), malformed, using an
            unsupported method, or not matching the body.
    """
    if not signature_header:
        if allow_unsigned:
            logfire.error(
                "Couldn't validate the signature, processing unsigned request",
                body_length=len(body),
            )
            return
        logfire.warn("Webhook request without signature rejected")
        raise SignatureError("Missing X-Hub-Signature header")

    elements = signature_header.split("=")
    if len(elements) != 2:
        logfire.warn("Malformed webhook signature header rejected")
        raise SignatureError("Malformed X-Hub-Signature header")

    method, signature_hash = elements
    method = method.strip().lower()
    if method not in SUPPORTED_METHODS:
        logfire.warn("Unsupported webhook signature method", method=method)
        raise SignatureError(f"Unsupported signature method: {method}")

    expected_hash = compute_signature(body, app_secret, method).split("=", 1)[1]

    # compare_digest only accepts ASCII str, so compare as bytes
    provided_hash = signature_hash.strip().lower().encode("utf-8")
    if not hmac.compare_digest(expected_hash.encode("ascii"), provided_hash):
        logfire.warn(
            "Webhook signature mismatch",
            method=method,
            body_length=len(body),
        )
        raise SignatureError("Couldn't validate the request signature")
