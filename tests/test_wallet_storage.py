"""
Tests for the persisted wallet catalog.
"""

import json

from vaultbot.solana.models import Wallet
from vaultbot.utils.wallet_storage import WalletCatalog


def _wallet(**overrides):
    fields = {
        "public_key": "5Dc4fH9Q7rgQeRmw3pVRv2Q4Wp5SbcJVgX7ewtRHpGSu",
        "secret_key": "c2VjcmV0",
        "created_at": 1700000000000,
        "seed_phrase_backed_up": False,
        "seed_phrase": "word " * 23 + "word",
    }
    fields.update(overrides)
    return Wallet(**fields)


def test_missing_file_starts_empty(catalog):
    assert len(catalog) == 0
    assert catalog.get("nobody") is None


def test_put_writes_camel_case_snapshot(catalog, catalog_path):
    catalog.put("42", _wallet())

    with open(catalog_path, encoding="utf-8") as f:
        raw = json.load(f)

    record = raw["42"]["wallet"]
    assert set(record) == {"publicKey", "secretKey", "createdAt", "seedPhraseBackedUp", "seedPhrase"}
    assert record["createdAt"] == 1700000000000
    assert record["seedPhraseBackedUp"] is False


def test_backed_up_wallet_has_no_seed_phrase_key(catalog, catalog_path):
    catalog.put("42", _wallet(seed_phrase_backed_up=True, seed_phrase=None))

    with open(catalog_path, encoding="utf-8") as f:
        record = json.load(f)["42"]["wallet"]

    assert "seedPhrase" not in record
    assert record["seedPhraseBackedUp"] is True


def test_reload_restores_wallets(catalog, catalog_path):
    catalog.put("1", _wallet())
    catalog.put("2", _wallet(public_key="other"))

    reloaded = WalletCatalog(catalog_path)

    assert len(reloaded) == 2
    assert reloaded.get("1") == catalog.get("1")
    assert sorted(reloaded) == ["1", "2"]


def test_numeric_user_ids_are_keyed_as_strings(catalog):
    catalog.put(7, _wallet())
    assert "7" in catalog
    assert catalog.get(7) is not None


def test_put_replaces_existing_entry(catalog):
    catalog.put("1", _wallet())
    catalog.put("1", _wallet(public_key="replacement"))

    assert len(catalog) == 1
    assert catalog.get("1").public_key == "replacement"


def test_delete_persists(catalog, catalog_path):
    catalog.put("1", _wallet())

    assert catalog.delete("1") is True
    assert catalog.delete("1") is False
    assert WalletCatalog(catalog_path).get("1") is None


def test_malformed_entries_are_skipped(catalog_path):
    good = {"wallet": _wallet().to_record()}
    with open(catalog_path, "w", encoding="utf-8") as f:
        json.dump({"good": good, "no_wallet": {}, "bad": {"wallet": {"publicKey": 3}}}, f)

    catalog = WalletCatalog(catalog_path)

    assert list(catalog) == ["good"]


def test_unreadable_file_starts_empty(catalog_path):
    with open(catalog_path, "w", encoding="utf-8") as f:
        f.write("{not json")

    assert len(WalletCatalog(catalog_path)) == 0


def test_record_without_seed_phrase_loads(catalog_path):
    with open(catalog_path, "w", encoding="utf-8") as f:
        json.dump({"9": {"wallet": {
            "publicKey": "abc",
            "secretKey": "c2VjcmV0",
            "createdAt": 1,
            "seedPhraseBackedUp": True,
        }}}, f)

    wallet = WalletCatalog(catalog_path).get("9")

    assert wallet.seed_phrase is None
    assert wallet.seed_phrase_backed_up is True
