from __future__ import annotations

from datetime import datetime

import pytest

from meli_gateway.clients.meli_oauth import OAuthTokenNotFoundError
from meli_gateway.clients.sqlite_store import SQLiteStore
from meli_gateway.models.tokens import TokenPair
from meli_gateway.services.meli_tokens import MeliTokenService
from meli_gateway.services.token_cipher import TokenCipherService


@pytest.fixture()
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "gateway.db"))


@pytest.fixture()
def service(store) -> MeliTokenService:
    return MeliTokenService(store=store, token_cipher=TokenCipherService(secret="secret-key"))


def test_save_and_read_back_pair(service: MeliTokenService) -> None:
    service.save_tokens("42", TokenPair("APP_USR-1", "TG-1"), expires_in=21600)

    assert service.get_tokens("42") == TokenPair("APP_USR-1", "TG-1")
    context = service.get_context("42")
    assert context.seller_id == "42"
    assert context.tokens.refresh_token == "TG-1"


def test_tokens_are_encrypted_at_rest(service: MeliTokenService, store: SQLiteStore) -> None:
    service.save_tokens("42", TokenPair("APP_USR-1", "TG-1"))

    record = store.get_item(partition_key="seller#42", sort_key="oauth#meli")
    assert record is not None
    assert "APP_USR-1" not in str(record)
    assert "TG-1" not in str(record)
    assert record["expires_at"] is None


def test_save_replaces_both_tokens_and_keeps_created_at(
    service: MeliTokenService, store: SQLiteStore
) -> None:
    service.save_tokens("42", TokenPair("APP_USR-1", "TG-1"))
    created_at = store.get_item(partition_key="seller#42", sort_key="oauth#meli")["created_at"]

    service.save_tokens("42", TokenPair("APP_USR-2", "TG-2"), expires_in=60)

    record = store.get_item(partition_key="seller#42", sort_key="oauth#meli")
    assert service.get_tokens("42") == TokenPair("APP_USR-2", "TG-2")
    assert record["created_at"] == created_at
    assert datetime.fromisoformat(record["expires_at"]) > datetime.fromisoformat(
        record["updated_at"]
    )


def test_missing_seller_raises(service: MeliTokenService) -> None:
    with pytest.raises(OAuthTokenNotFoundError):
        service.get_tokens("unknown")


def test_incomplete_record_raises(service: MeliTokenService, store: SQLiteStore) -> None:
    store.put_item({"pk": "seller#7", "sk": "oauth#meli", "seller_id": "7"})

    with pytest.raises(OAuthTokenNotFoundError):
        service.get_tokens("7")


def test_delete_unlinks_seller(service: MeliTokenService) -> None:
    service.save_tokens("42", TokenPair("APP_USR-1", "TG-1"))

    assert service.delete_tokens("42") is True
    assert service.delete_tokens("42") is False
    with pytest.raises(OAuthTokenNotFoundError):
        service.get_tokens("42")
