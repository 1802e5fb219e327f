"""Session tokens handed to the StackIt web client after register/login.

HS256 JWTs scoped to this service: issued by ``stackit-auth`` for the
``stackit-web`` audience, carrying the identity id as ``sub`` and the email
it was issued for. A token minted for any other issuer or audience is
rejected even when the signing secret matches.
"""

from datetime import datetime, timedelta, timezone

import jwt

ISSUER = "stackit-auth"
AUDIENCE = "stackit-web"
ALGORITHM = "HS256"


def create_token(
    identity_id: str,
    email: str,
    secret: str,
    expiry_hours: int = 24,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": identity_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(hours=expiry_hours),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> dict | None:
    """Check signature, expiry, issuer and audience.

    Returns ``{"identity_id", "email"}`` or ``None`` for any invalid token.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
            options={"require": ["exp", "sub", "iss", "aud"]},
        )
        return {"identity_id": claims["sub"], "email": claims["email"]}
    except (jwt.InvalidTokenError, KeyError):
        return None
