"""Request signing for providers that authenticate with HMAC signatures.

Two schemes are supported:
- AWS Signature Version 4 for form-encoded query API calls (SNS), signed
  with botocore.
- OAuth 1.0a HMAC-SHA1 (Twitter), as an authlib ``httpx.Auth``.
"""

from __future__ import annotations

from urllib.parse import quote, urlencode

from authlib.integrations.httpx_client import OAuth1Auth
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"


def sigv4_form_request(
    *,
    url: str,
    form: dict[str, str],
    access_key: str,
    secret_key: str,
    region: str,
    service: str,
    session_token: str | None = None,
) -> tuple[bytes, dict[str, str]]:
    """Encode ``form`` and sign a POST of it to ``url``.

    Returns:
        The request body and the headers to send with it, including
        ``Authorization`` and ``X-Amz-Date``.

    Example:
        body, headers = sigv4_form_request(
            url="https://sns.us-east-1.amazonaws.com/",
            form={"Action": "Publish", ...},
            access_key="AKIA...", secret_key="...",
            region="us-east-1", service="sns",
        )
    """
    body = urlencode(sorted(form.items()), quote_via=quote).encode("utf-8")
    request = AWSRequest(method="POST", url=url, data=body, headers={"Content-Type": FORM_CONTENT_TYPE})
    SigV4Auth(Credentials(access_key, secret_key, session_token), service, region).add_auth(request)
    return body, dict(request.headers.items())


def oauth1_auth(*, consumer_key: str, consumer_secret: str, token: str, token_secret: str) -> OAuth1Auth:
    """HMAC-SHA1 user-context auth for ``httpx`` requests.

    JSON bodies are kept and covered by an ``oauth_body_hash`` parameter.
    """
    return OAuth1Auth(
        client_id=consumer_key,
        client_secret=consumer_secret,
        token=token,
        token_secret=token_secret,
        force_include_body=True,
    )


__all__ = ["FORM_CONTENT_TYPE", "oauth1_auth", "sigv4_form_request"]
