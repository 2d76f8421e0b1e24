"""
Symmetric protection for tokens stored at rest.

Tokens are encrypted with Fernet. The Fernet key is derived from the
configured master secret with HKDF, using a versioned purpose string, so
ciphertext produced here can only be read by a protector created for the
same purpose.

Decryption is fail-open: an undecryptable value is returned as-is rather
than raising, so a single bad field never blocks reading the rest of an
account record. A garbled token is later rejected by the provider like
any other invalid credential.
"""

import base64
import logging
from typing import Optional, Sequence

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger(__name__)

TOKEN_PURPOSE = "calendar-link.LinkedAccountTokens.v1"


def derive_fernet_key(master_key: str | bytes, purpose: str = TOKEN_PURPOSE) -> bytes:
    """
    Derive a purpose-scoped Fernet key from a master secret.

    Args:
        master_key: Deployment master secret (any length)
        purpose: Namespace string isolating this key from other uses

    Returns:
        URL-safe base64 encoded 32-byte key
    """
    if isinstance(master_key, str):
        master_key = master_key.encode("utf-8")
    if not master_key:
        raise ValueError("master_key must not be empty")

    derived = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=purpose.encode("utf-8"),
    ).derive(master_key)
    return base64.urlsafe_b64encode(derived)


class TokenProtector:
    """
    Protects (encrypts) and unprotects (decrypts) stored tokens.

    Usage:
        protector = TokenProtector(settings.token_encryption_key)
        stored = protector.protect(refresh_token)
        refresh_token = protector.unprotect(stored)
    """

    def __init__(
        self,
        master_key: str | bytes,
        previous_keys: Sequence[str | bytes] = (),
        purpose: str = TOKEN_PURPOSE,
    ):
        """
        Initialize the protector.

        Args:
            master_key: Current master secret, used for all new ciphertext
            previous_keys: Retired master secrets still accepted on read
            purpose: Namespace string for key derivation
        """
        self.purpose = purpose
        fernets = [Fernet(derive_fernet_key(master_key, purpose))]
        fernets.extend(Fernet(derive_fernet_key(key, purpose)) for key in previous_keys)
        self._fernet = MultiFernet(fernets)

    @classmethod
    def from_settings(cls, settings) -> "TokenProtector":
        """
        Build a protector from application settings.

        Falls back to an ephemeral key when no key is configured, which
        means tokens stored in this process cannot be read after restart.
        """
        master_key = settings.token_encryption_key
        if not master_key:
            logger.warning(
                "TOKEN_ENCRYPTION_KEY not set. Generating a temporary key; "
                "stored tokens will be unreadable after restart."
            )
            master_key = Fernet.generate_key()
        return cls(master_key, previous_keys=settings.previous_encryption_keys)

    def protect(self, plaintext: Optional[str]) -> str:
        """Encrypt a token. Empty or missing input yields an empty string."""
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def unprotect(self, protected_text: Optional[str]) -> Optional[str]:
        """
        Decrypt a token.

        Empty or missing input is returned unchanged. Input that cannot be
        decrypted (corrupt, wrong key, other environment) is also returned
        unchanged.
        """
        if not protected_text:
            return protected_text

        try:
            return self._fernet.decrypt(protected_text.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            logger.warning("Stored token could not be decrypted; passing it through")
            return protected_text
