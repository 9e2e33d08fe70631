"""Symmetric encryption of seller credentials kept in the record store."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from meli_gateway.models.tokens import TokenPair


class TokenCipherService:
    """Encrypt and decrypt MercadoLibre tokens using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def encrypt_pair(self, tokens: TokenPair) -> dict[str, str]:
        """Return the record fields holding ``tokens`` encrypted."""
        return {
            "access_token_encrypted": self.encrypt(tokens.access_token),
            "refresh_token_encrypted": self.encrypt(tokens.refresh_token),
        }

    def decrypt_pair(self, record: dict) -> TokenPair:
        return TokenPair(
            access_token=self.decrypt(record["access_token_encrypted"]),
            refresh_token=self.decrypt(record["refresh_token_encrypted"]),
        )


__all__ = ["TokenCipherService"]
