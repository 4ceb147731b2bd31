"""Access-token signing and device fingerprinting built on python-jose."""
from __future__ import annotations

import hashlib
from collections.abc import Callable
from datetime import datetime, timedelta

from jose import JWTError, jwt
from pydantic import ValidationError

from tokengate.core.context import DeviceContext
from tokengate.core.errors import AuthErrorKind, ConfigurationError, Err, Ok, Result
from tokengate.db.time import utcnow
from tokengate.schemas.auth import TokenPayload

MIN_SECRET_BYTES = 32
FINGERPRINT_LENGTH = 16

# Claims the codec owns; anything supplied in the payload is overwritten.
_REGISTERED_CLAIMS = {"iss", "aud", "exp", "iat"}


class SignedTokenCodec:
    """Create and verify HS256 tokens bound to one issuer and audience.

    The codec is stateless: it keeps no record of issued tokens.
    """

    def __init__(
        self,
        secret: str,
        *,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationError(
                f"JWT signing secret must be at least {MIN_SECRET_BYTES} bytes"
            )
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self.clock = clock

    def sign(self, payload: TokenPayload, ttl_seconds: int) -> str:
        """Return a signed token for ``payload`` that expires after ``ttl_seconds``."""
        now = self.clock()
        claims: dict[str, object] = payload.model_dump(
            exclude_none=True,
            exclude=_REGISTERED_CLAIMS,
        )
        claims["iss"] = self.issuer
        claims["aud"] = self.audience
        claims["iat"] = int(now.timestamp())
        claims["exp"] = int((now + timedelta(seconds=ttl_seconds)).timestamp())
        encoded: str = jwt.encode(claims, self._secret, algorithm=self.algorithm)
        return encoded

    def verify(self, token: str) -> Result[TokenPayload, AuthErrorKind]:
        """Decode ``token`` and validate signature, expiry, issuer, audience and shape."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "require_exp": True,
                    "require_iss": True,
                    "require_aud": True,
                    "require_sub": True,
                    "require_jti": True,
                },
            )
        except JWTError as err:
            return Err(AuthErrorKind.INVALID_TOKEN, f"jwt rejected: {err}")

        try:
            payload = TokenPayload.model_validate(claims)
        except ValidationError as err:
            return Err(AuthErrorKind.INVALID_TOKEN, f"malformed payload: {err.error_count()} errors")

        # Expiry is judged by the same clock that stamped it.
        now = int(self.clock().timestamp())
        if payload.exp is None or payload.exp < now:
            return Err(AuthErrorKind.INVALID_TOKEN, f"expired at {payload.exp}")
        return Ok(payload)


def device_fingerprint(device: DeviceContext | None) -> str:
    """Return a short, stable, non-reversible digest of device metadata.

    This is a weak binding signal, not a security boundary.
    """
    device = device or DeviceContext()
    material = "|".join(
        [device.device_id or "", device.user_agent or "", device.ip_address or ""]
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]
