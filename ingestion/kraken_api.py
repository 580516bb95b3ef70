"""
Kraken REST client for WebSocket authentication.
Fetches the short-lived token the private WebSocket feed needs.
"""
import base64
import hashlib
import hmac
import logging
import ssl
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import aiohttp
import certifi

import config
from errors import AuthenticationError

logger = logging.getLogger(__name__)


def get_ssl_context() -> ssl.SSLContext:
    """SSL context backed by the certifi CA bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def get_kraken_signature(url_path: str, postdata: str, nonce: str, secret: str) -> str:
    """
    Sign a private REST request.

    API-Sign = base64(HMAC-SHA512(base64decode(secret), path + SHA256(nonce + postdata)))

    Args:
        url_path: Request path, e.g. "/0/private/GetWebSocketsToken"
        postdata: URL-encoded request body
        nonce: The nonce sent in the body
        secret: Base64 encoded API secret
    """
    sha = hashlib.sha256((nonce + postdata).encode()).digest()
    mac = hmac.new(base64.b64decode(secret), url_path.encode() + sha, hashlib.sha512)
    return base64.b64encode(mac.digest()).decode()


@dataclass
class WebSocketToken:
    token: str
    expires_at: float  # Unix seconds

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


async def fetch_websocket_token(
    session: aiohttp.ClientSession,
    api_key: str,
    api_secret: str,
    base_url: str = config.KRAKEN_API_URL
) -> WebSocketToken:
    """
    Request a WebSocket token.

    Args:
        session: aiohttp session
        api_key: Kraken API key
        api_secret: Base64 encoded Kraken API secret

    Returns:
        WebSocketToken

    Raises:
        AuthenticationError: on transport errors or when Kraken reports an error
    """
    nonce = str(int(time.time() * 1000))
    postdata = urlencode({"nonce": nonce})

    try:
        signature = get_kraken_signature(config.KRAKEN_TOKEN_PATH, postdata, nonce, api_secret)
    except (ValueError, TypeError) as e:
        raise AuthenticationError(f"Error decoding secret: {e}") from e

    headers = {
        "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
        "Accept": "application/json",
        "API-Key": api_key,
        "API-Sign": signature,
    }

    url = f"{base_url}{config.KRAKEN_TOKEN_PATH}"
    try:
        async with session.post(
            url,
            data=postdata,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT)
        ) as r:
            r.raise_for_status()
            body = await r.json()
    except aiohttp.ClientError as e:
        raise AuthenticationError(f"Error requesting token: {e}") from e

    if body.get("error"):
        raise AuthenticationError(f"Authentication failed: {body['error']}")

    result = body.get("result") or {}
    token = result.get("token")
    if not token:
        raise AuthenticationError(f"No token in response: {body}")

    expires = int(result.get("expires", 0))
    logger.info(f"Received WebSocket token (expires in {expires}s)")
    return WebSocketToken(token=token, expires_at=time.time() + expires)
