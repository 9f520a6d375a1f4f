"""
test_card_scenarios.py - End-to-end scenarios for the Card collection

Tests complete flows against a default-configured ledger:
- Deployment metadata and token URIs
- Minting both kinds and kind locking
- Holder, operator and unauthorized transfers
- Packed-slot capacity
- A 100-id batch transfer across many bins
- Custody through a receiving contract
"""

import pytest

from tokenledger import (
    TokenLedger, TokenKind, NULL_ACCOUNT,
    non_fungible, fungible,
    Transfer, TransferToken, BatchTransfer, ApprovalForAll,
    Overflow, KindConflict, Unauthorized, ReceiverRejected,
)

from tests.conftest import assert_invariants, RecordingReceiver

ALICE, BOB, CARLOS = "alice", "bob", "carlos"


@pytest.fixture
def card():
    return TokenLedger()


class TestDeployment:
    """Collection metadata."""

    def test_name_and_symbol(self, card):
        assert card.name == "Card"
        assert card.symbol == "CRD"

    def test_token_uri_for_fungible(self, card):
        card.mint(fungible(0, ALICE, 2))
        assert card.token_uri(0) == "https://rinkeby.loom.games/erc721/zmb/000000.json"

    def test_token_uri_for_non_fungible(self, card):
        card.mint(non_fungible(0, ALICE))
        assert card.token_uri(0) == "https://rinkeby.loom.games/erc721/zmb/000000.json"


class TestMinting:

    def test_mint_fungible_with_quantity_two(self, card):
        card.mint(fungible(0, ALICE, 2))
        assert card.balance_of_coin(ALICE, 0) == 2
        assert card.balance_of(ALICE) == 1
        assert card.total_supply() == 1

    def test_mint_fungible(self, card):
        card.mint(fungible(0, ALICE, 5))
        assert card.balance_of_coin(ALICE, 0) == 5
        assert card.balance_of(ALICE) == 1

    def test_mint_non_fungible(self, card):
        card.mint(non_fungible(0, ALICE))
        assert card.balance_of_coin(ALICE, 0) == 1
        assert card.balance_of(ALICE) == 1
        assert card.owner_of(0) == ALICE

    @pytest.mark.parametrize("second", [
        non_fungible(0, ALICE),
        non_fungible(0, BOB),
        fungible(0, ALICE, 5),
    ])
    def test_duplicate_nft_id_rejected(self, card, second):
        card.mint(non_fungible(0, ALICE))
        supply = card.total_supply()
        with pytest.raises(KindConflict):
            card.mint(second)
        assert card.total_supply() == supply
        assert card.owner_of(0) == ALICE

    def test_nft_on_existing_fungible_id_rejected(self, card):
        card.mint(fungible(0, ALICE, 5))
        supply = card.total_supply()
        with pytest.raises(KindConflict):
            card.mint(non_fungible(0, ALICE))
        assert card.total_supply() == supply
        assert card.balance_of_coin(ALICE, 0) == 5

    def test_quantity_beyond_slot_width(self, card):
        with pytest.raises(Overflow):
            card.mint(fungible(0, ALICE, 150000))
        assert card.total_supply() == 0
        assert len(card.event_log) == 0


class TestTransfers:

    def test_transfer_non_fungible(self, card):
        card.mint(non_fungible(0, ALICE))
        event = card.transfer(ALICE, ALICE, BOB, 0)

        assert card.owner_of(0) == BOB
        assert (event.from_account, event.to, event.token_id) == (ALICE, BOB, 0)
        assert isinstance(event, Transfer)
        assert card.balance_of(BOB) == 1
        assert card.balance_of(ALICE) == 0

    def test_alice_transfers_fungible(self, card):
        card.mint(fungible(0, ALICE, 3))
        assert card.balance_of(ALICE) == 1
        assert card.balance_of(BOB) == 0

        event = card.transfer_quantity(ALICE, ALICE, BOB, 0, 3, data=b"\xab\xcd")

        assert event == TransferToken(ALICE, BOB, 0, 3, sequence_number=1)
        assert card.balance_of(ALICE) == 0
        assert card.balance_of(BOB) == 1

    def test_partial_fungible_transfer(self, card):
        card.mint(fungible(0, ALICE, 5))
        card.transfer_quantity(ALICE, ALICE, BOB, 0, 3)
        assert card.balance_of_coin(ALICE, 0) == 2
        assert card.balance_of_coin(BOB, 0) == 3
        assert card.balance_of(ALICE) == 1
        assert card.balance_of(BOB) == 1
        assert_invariants(card)

    def test_alice_authorizes_bob(self, card):
        card.mint(fungible(0, ALICE, 5))
        approval = card.set_approval_for_all(ALICE, BOB, True)
        assert approval == ApprovalForAll(ALICE, BOB, True, sequence_number=1)

        event = card.transfer_quantity(BOB, ALICE, BOB, 0, 5, data=b"\xab\xcd")
        assert (event.from_account, event.to, event.token_id, event.quantity) == (ALICE, BOB, 0, 5)

    def test_carlos_not_authorized(self, card):
        card.mint(fungible(0, ALICE, 5))
        card.set_approval_for_all(ALICE, BOB, True)
        with pytest.raises(Unauthorized):
            card.transfer_quantity(CARLOS, ALICE, BOB, 0, 5, data=b"\xab\xcd")
        assert card.balance_of_coin(ALICE, 0) == 5


class TestBatchAcrossBins:

    def test_batch_of_one_hundred_ids(self, card):
        cards = list(range(300, 400))
        copies = [10] * len(cards)
        for token_id in cards:
            card.mint(fungible(token_id, ALICE, 10))
        assert card.balance_of(ALICE) == 100
        events_before = len(card.event_log)

        event = card.batch_transfer(ALICE, ALICE, BOB, cards, copies)

        for token_id, quantity in zip(cards, copies):
            assert card.balance_of_coin(ALICE, token_id) == 0
            assert card.balance_of_coin(BOB, token_id) == quantity
        assert card.balance_of(ALICE) == 0
        assert card.balance_of(BOB) == 100
        assert card.total_supply() == 100
        assert card.store.bins_of(ALICE) == {}
        assert sorted(card.store.bins_of(BOB)) == list(range(18, 25))

        assert isinstance(event, BatchTransfer)
        assert (event.from_account, event.to) == (ALICE, BOB)
        assert len(card.event_log) == events_before + 1
        assert_invariants(card)


class TestReceivingContract:
    """Custody by an account registered as a receiver."""

    def test_deposit_and_withdraw(self, card):
        vault = RecordingReceiver()
        card.register_receiver("vault", vault)
        card.mint(non_fungible(0, ALICE))
        card.mint(fungible(1, ALICE, 50))

        card.batch_transfer(ALICE, ALICE, "vault", [0, 1], [1, 20], data=b"deposit")
        assert card.owner_of(0) == "vault"
        assert vault.calls == [(ALICE, ALICE, (0, 1), (1, 20), b"deposit")]

        card.transfer("vault", "vault", ALICE, 0)
        assert card.owner_of(0) == ALICE
        assert card.tokens_owned("vault") == ([1], [20])
        assert_invariants(card)

    def test_closed_vault_refuses_deposits(self, card):
        vault = RecordingReceiver(accept=False)
        card.register_receiver("vault", vault)
        card.mint(fungible(1, ALICE, 50))
        events_before = len(card.event_log)

        with pytest.raises(ReceiverRejected):
            card.transfer_quantity(ALICE, ALICE, "vault", 1, 20)

        assert len(vault.calls) == 1
        assert card.balance_of_coin(ALICE, 1) == 50
        assert card.balance_of("vault") == 0
        assert len(card.event_log) == events_before


class TestEventTrail:

    def test_every_committed_call_logged_in_order(self, card):
        card.mint(non_fungible(0, ALICE))
        card.mint(fungible(1, ALICE, 4))
        card.set_approval_for_all(ALICE, BOB, True)
        card.transfer(BOB, ALICE, CARLOS, 0)
        with pytest.raises(Unauthorized):
            card.transfer(BOB, CARLOS, ALICE, 0)
        card.batch_transfer(ALICE, ALICE, BOB, [1], [4])

        kinds = [type(e).__name__ for e in card.event_log]
        assert kinds == ["Transfer", "TransferToken", "ApprovalForAll", "Transfer", "BatchTransfer"]
        assert [e.sequence_number for e in card.event_log] == list(range(5))
        assert card.event_log[0].from_account == NULL_ACCOUNT
        assert card.token_kind(0) is TokenKind.NON_FUNGIBLE
