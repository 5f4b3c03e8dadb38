"""Random opaque identifiers for view artifacts and subscriptions."""

import secrets

DEFAULT_TOKEN_BYTES = 12


def generate_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """Return a URL-safe random token.

    Uniqueness is probabilistic; 12 bytes gives 96 bits of entropy which is
    plenty for identifiers that live at most a few days.
    """
    if nbytes < 8:
        raise ValueError(f"Token needs at least 8 bytes of entropy, got {nbytes}")
    return secrets.token_urlsafe(nbytes)
