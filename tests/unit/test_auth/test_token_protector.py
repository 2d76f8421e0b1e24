"""Tests for token protection at rest."""

import base64
from types import SimpleNamespace

import pytest
from cryptography.fernet import Fernet

from src.auth.token_protector import TOKEN_PURPOSE, TokenProtector, derive_fernet_key


class TestDeriveFernetKey:
    """Tests for HKDF key derivation."""

    def test_derives_valid_fernet_key(self):
        """Derived key should be usable by Fernet."""
        key = derive_fernet_key("master")
        assert len(base64.urlsafe_b64decode(key)) == 32
        Fernet(key)

    def test_deterministic(self):
        """Same secret and purpose should give the same key."""
        assert derive_fernet_key("master") == derive_fernet_key("master")

    def test_purpose_changes_key(self):
        """Different purposes should give different keys."""
        assert derive_fernet_key("master", TOKEN_PURPOSE) != derive_fernet_key(
            "master", "something-else.v1"
        )

    def test_empty_master_key_rejected(self):
        """An empty master key should raise ValueError."""
        with pytest.raises(ValueError):
            derive_fernet_key("")


class TestProtect:
    """Tests for TokenProtector.protect / unprotect."""

    def test_round_trip(self, protector):
        """unprotect(protect(s)) should return s."""
        protected = protector.protect("ya29.secret-token")
        assert protected != "ya29.secret-token"
        assert protector.unprotect(protected) == "ya29.secret-token"

    def test_ciphertext_is_randomized(self, protector):
        """Protecting the same value twice should give different ciphertext."""
        assert protector.protect("token") != protector.protect("token")

    def test_protect_empty_returns_empty_string(self, protector):
        """Empty or missing input should protect to an empty string."""
        assert protector.protect("") == ""
        assert protector.protect(None) == ""

    def test_unprotect_empty_passthrough(self, protector):
        """Empty or missing input should be returned unchanged."""
        assert protector.unprotect("") == ""
        assert protector.unprotect(None) is None

    def test_corrupt_ciphertext_returned_verbatim(self, protector):
        """Undecryptable input should be returned as-is, not raise."""
        protected = protector.protect("token")
        corrupted = protected[:-4] + "AAAA"
        assert protector.unprotect(corrupted) == corrupted
        assert protector.unprotect("not-ciphertext") == "not-ciphertext"

    def test_other_purpose_cannot_decrypt(self):
        """A protector for another purpose should not read our ciphertext."""
        ours = TokenProtector("shared-master")
        theirs = TokenProtector("shared-master", purpose="other-subsystem.v1")

        protected = ours.protect("token")

        assert theirs.unprotect(protected) == protected

    def test_other_key_cannot_decrypt(self):
        """Ciphertext from another environment should pass through."""
        protected = TokenProtector("key-a").protect("token")
        assert TokenProtector("key-b").unprotect(protected) == protected


class TestKeyRotation:
    """Tests for reading ciphertext under retired keys."""

    def test_previous_key_still_decrypts(self):
        """Values protected under a retired key should still be readable."""
        old = TokenProtector("old-master")
        protected = old.protect("token")

        rotated = TokenProtector("new-master", previous_keys=["old-master"])

        assert rotated.unprotect(protected) == "token"

    def test_new_values_use_current_key(self):
        """New ciphertext should not be readable with only the retired key."""
        rotated = TokenProtector("new-master", previous_keys=["old-master"])
        protected = rotated.protect("token")

        assert TokenProtector("old-master").unprotect(protected) == protected


class TestFromSettings:
    """Tests for building a protector from settings."""

    def test_uses_configured_key(self):
        """Configured key should be used for encryption."""
        settings = SimpleNamespace(token_encryption_key="master", previous_encryption_keys=[])
        protected = TokenProtector.from_settings(settings).protect("token")

        assert TokenProtector("master").unprotect(protected) == "token"

    def test_missing_key_generates_ephemeral_key(self, caplog):
        """Without a key a temporary one should be generated with a warning."""
        settings = SimpleNamespace(token_encryption_key="", previous_encryption_keys=[])

        with caplog.at_level("WARNING"):
            protector = TokenProtector.from_settings(settings)

        assert protector.unprotect(protector.protect("token")) == "token"
        assert "TOKEN_ENCRYPTION_KEY not set" in caplog.text
