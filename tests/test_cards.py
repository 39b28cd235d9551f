import pytest

from sequence_engine.cards import (
    DECK_SIZE, Card, JackType, Suit, board_card_keys, deal_cards, generate_deck,
    hand_size_for, is_jack, is_one_eyed_jack, is_two_eyed_jack, shuffle_deck,
)
from sequence_engine.errors import EngineError, ErrorCode


def test_generate_deck_has_104_unique_cards():
    deck = generate_deck()
    assert len(deck) == DECK_SIZE == 104
    assert len({c.id for c in deck}) == 104
    assert sum(1 for c in deck if c.rank == "J") == 8
    assert not any(c.is_joker for c in deck)


def test_jack_types_follow_suit_colour():
    assert is_two_eyed_jack(Card.make(0, Suit.HEARTS, "J"))
    assert is_two_eyed_jack(Card.make(1, Suit.DIAMONDS, "J"))
    assert is_one_eyed_jack(Card.make(0, Suit.CLUBS, "J"))
    assert is_one_eyed_jack(Card.make(1, Suit.SPADES, "J"))
    queen = Card.make(0, Suit.SPADES, "Q")
    assert not is_jack(queen) and queen.jack_type is None
    deck = generate_deck()
    assert sum(1 for c in deck if c.jack_type == JackType.TWO_EYED) == 4
    assert sum(1 for c in deck if c.jack_type == JackType.ONE_EYED) == 4


def test_board_keys_exclude_jacks():
    keys = board_card_keys()
    assert len(keys) == 48
    assert all(rank != "J" for _, rank in keys)


def test_shuffle_is_seeded_and_leaves_input_alone():
    deck = generate_deck()
    before = list(deck)
    a = shuffle_deck(deck, seed=99)
    b = shuffle_deck(deck, seed=99)
    assert [c.id for c in a] == [c.id for c in b]
    assert deck == before
    assert sorted(c.id for c in a) == sorted(c.id for c in deck)


def test_deal_cards_round_robin_from_top():
    deck = generate_deck()
    hands, remaining = deal_cards(deck, 2)
    assert [len(h) for h in hands] == [7, 7]
    assert hands[0][0] == deck[0] and hands[1][0] == deck[1]
    assert len(remaining) == 104 - 14
    assert remaining[0] == deck[14]


def test_deal_cards_rejects_bad_counts():
    with pytest.raises(EngineError) as exc:
        deal_cards(generate_deck(), 0)
    assert exc.value.code == ErrorCode.ERR_INVALID_PLAYER_COUNT
    with pytest.raises(EngineError):
        deal_cards(generate_deck()[:10], 2)


def test_hand_size_table():
    assert hand_size_for(2) == 7
    assert hand_size_for(4) == 6
    assert hand_size_for(6) == 5
    assert hand_size_for(9) == 4
    assert hand_size_for(12) == 3


def test_card_from_id():
    card = Card.from_id("card-1-spades-10")
    assert card.suit == Suit.SPADES and card.rank == "10" and card.id == "card-1-spades-10"
    assert Card.from_id("card-0-clubs-J").jack_type == JackType.ONE_EYED
    for bad in ("card-2-spades-10", "card-0-stars-A", "card-0-hearts-1", "hearts-A", ""):
        with pytest.raises(EngineError) as exc:
            Card.from_id(bad)
        assert exc.value.code == ErrorCode.ERR_UNKNOWN_CARD


def test_matches_ignores_deck_copy():
    assert Card.make(0, Suit.HEARTS, "7").matches(Card.make(1, Suit.HEARTS, "7"))
    assert not Card.make(0, Suit.HEARTS, "7").matches(Card.make(0, Suit.DIAMONDS, "7"))
    assert not Card.make(0, Suit.HEARTS, "7").matches(None)


def test_shuffle_of_tiny_decks():
    assert shuffle_deck([], seed=1) == []
    one = [Card.make(0, Suit.CLUBS, "2")]
    assert shuffle_deck(one, seed=1) == one
