"""
Tests for quote numbers, status transitions and approval tokens.
"""

from datetime import date

import pytest

from database import InMemoryQuoteRepository
from domain import LineItem, Quote, QuoteStatus
from quotes import VALID_TRANSITIONS, QuoteNumberGenerator, can_transition, format_quote_number
from quotes.errors import InvalidTransitionError
from quotes.numbering import parse_sequence
from quotes.tokens import generate_token, tokens_match
from quotes.transitions import ensure_transition


def stored_quote(number: str) -> Quote:
    return Quote(quote_number=number, line_items=[LineItem(name="Mug")])


class TestQuoteNumbers:
    """Tests for quote number allocation."""

    def test_format(self):
        assert format_quote_number("Q", 2026, 7) == "Q2026-0007"
        assert format_quote_number("Q", 2026, 12345) == "Q2026-12345"

    def test_parse_sequence(self):
        assert parse_sequence("Q2026-0042") == 42
        assert parse_sequence("garbage") == 0
        assert parse_sequence(None) == 0

    def test_first_number_of_year(self):
        generator = QuoteNumberGenerator(InMemoryQuoteRepository(), "Q")
        assert generator.next_number(date(2026, 1, 1)) == "Q2026-0001"

    def test_continues_from_highest(self):
        repo = InMemoryQuoteRepository()
        for number in ("Q2026-0009", "Q2026-0010", "Q2025-0500"):
            repo.add(stored_quote(number))

        generator = QuoteNumberGenerator(repo, "Q")

        assert generator.next_number(date(2026, 6, 1)) == "Q2026-0011"
        assert generator.next_number(date(2025, 6, 1)) == "Q2025-0501"

    def test_beyond_four_digits(self):
        repo = InMemoryQuoteRepository()
        repo.add(stored_quote("Q2026-9999"))
        repo.add(stored_quote("Q2026-10000"))

        assert QuoteNumberGenerator(repo, "Q").next_number(date(2026, 6, 1)) == "Q2026-10001"

    def test_duplicate_number_rejected_by_store(self):
        repo = InMemoryQuoteRepository()
        repo.add(stored_quote("Q2026-0001"))
        with pytest.raises(ValueError):
            repo.add(stored_quote("Q2026-0001"))


class TestTransitions:
    """Tests for the status transition table."""

    @pytest.mark.parametrize("current,target", [
        (QuoteStatus.PENDING, QuoteStatus.REVIEWING),
        (QuoteStatus.SENT, QuoteStatus.SENT),
        (QuoteStatus.SENT, QuoteStatus.APPROVED),
        (QuoteStatus.ARTWORK_DECLINED, QuoteStatus.ARTWORK_PENDING),
        (QuoteStatus.ARTWORK_APPROVED, QuoteStatus.APPROVED),
        (QuoteStatus.DECLINED, QuoteStatus.REVIEWING),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (QuoteStatus.PENDING, QuoteStatus.APPROVED),
        (QuoteStatus.ARTWORK_PENDING, QuoteStatus.APPROVED),
        (QuoteStatus.ARTWORK_DECLINED, QuoteStatus.APPROVED),
        (QuoteStatus.APPROVED, QuoteStatus.SENT),
        (QuoteStatus.ARCHIVED, QuoteStatus.PENDING),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_archive_reachable_from_every_live_status(self):
        for status in QuoteStatus:
            if status != QuoteStatus.ARCHIVED:
                assert can_transition(status, QuoteStatus.ARCHIVED)

    def test_archived_is_terminal(self):
        assert VALID_TRANSITIONS[QuoteStatus.ARCHIVED] == frozenset()

    def test_ensure_transition_carries_statuses(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(QuoteStatus.PENDING, QuoteStatus.APPROVED)

        assert exc_info.value.current_status == "PENDING"
        assert exc_info.value.target_status == "APPROVED"
        assert exc_info.value.status_code == 409


class TestTokens:
    """Tests for approval link tokens."""

    def test_token_shape(self):
        token = generate_token()
        assert len(token) == 64
        int(token, 16)

    def test_tokens_unique(self):
        assert len({generate_token() for _ in range(50)}) == 50

    def test_tokens_match(self):
        token = generate_token()
        assert tokens_match(token, token)
        assert not tokens_match(token, generate_token())
        assert not tokens_match(None, token)
        assert not tokens_match(token, "")
