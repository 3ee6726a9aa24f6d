"""
test_asset_book.py - Unit tests for AssetBook and AssetMove

Tests:
- AssetMove validation
- Wallet registration
- Issuance from SYSTEM_WALLET
- Transfers, refusals and insufficient balances
- atomic() rollback
"""

import pytest

from rebase_ledger import (
    AssetBook, AssetMove, SYSTEM_WALLET,
    InsufficientBalance, TransferFailed, WalletNotRegistered,
)


@pytest.fixture
def book():
    book = AssetBook("ETH", verbose=False)
    book.register_wallet("alice")
    book.register_wallet("bob")
    book.issue("alice", 1_000)
    return book


class TestAssetMove:

    def test_valid(self):
        move = AssetMove(10, "alice", "bob", "deposit")
        assert move.quantity == 10

    def test_zero_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            AssetMove(0, "alice", "bob", "deposit")

    def test_same_wallet_rejected(self):
        with pytest.raises(ValueError, match="different"):
            AssetMove(10, "alice", "alice", "deposit")

    def test_empty_reference_rejected(self):
        with pytest.raises(ValueError, match="reference"):
            AssetMove(10, "alice", "bob", "  ")


class TestRegistration:

    def test_system_wallet_present(self):
        book = AssetBook(verbose=False)
        assert book.is_registered(SYSTEM_WALLET)

    def test_duplicate_rejected(self, book):
        with pytest.raises(ValueError, match="already registered"):
            book.register_wallet("alice")

    def test_list_wallets(self, book):
        assert book.list_wallets() == {SYSTEM_WALLET, "alice", "bob"}

    def test_unknown_balance(self, book):
        with pytest.raises(WalletNotRegistered):
            book.balance_of("carol")


class TestMoves:

    def test_issue(self, book):
        assert book.balance_of("alice") == 1_000
        assert book.balance_of(SYSTEM_WALLET) == -1_000
        assert book.circulating_supply() == 1_000

    def test_total_supply_zero(self, book):
        book.transfer("alice", "bob", 300)
        assert book.total_supply() == 0

    def test_transfer(self, book):
        move = book.transfer("alice", "bob", 300, reference="gift")
        assert book.balance_of("alice") == 700
        assert book.balance_of("bob") == 300
        assert book.transfer_log[-1] == move
        assert move.reference == "gift"

    def test_insufficient(self, book):
        with pytest.raises(InsufficientBalance):
            book.transfer("alice", "bob", 1_001)
        assert book.balance_of("alice") == 1_000

    def test_unregistered_destination(self, book):
        with pytest.raises(WalletNotRegistered):
            book.transfer("alice", "carol", 1)

    def test_refused_inbound(self, book):
        book.set_accept_inbound("bob", False)
        with pytest.raises(TransferFailed):
            book.transfer("alice", "bob", 1)
        assert book.balance_of("bob") == 0
        book.set_accept_inbound("bob", True)
        book.transfer("alice", "bob", 1)
        assert book.balance_of("bob") == 1

    def test_register_refusing_wallet(self, book):
        book.register_wallet("cold", accept_inbound=False)
        with pytest.raises(TransferFailed):
            book.issue("cold", 5)


class TestAtomic:

    def test_rollback(self, book):
        log_length = len(book.transfer_log)
        with pytest.raises(InsufficientBalance):
            with book.atomic():
                book.transfer("alice", "bob", 600)
                book.transfer("alice", "bob", 600)
        assert book.balance_of("alice") == 1_000
        assert book.balance_of("bob") == 0
        assert len(book.transfer_log) == log_length

    def test_commit(self, book):
        with book.atomic():
            book.transfer("alice", "bob", 600)
        assert book.balance_of("bob") == 600
