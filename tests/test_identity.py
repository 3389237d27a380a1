"""
Unit Tests for the Identity Resolver
=====================================
"""

import pytest

from credential_core.errors import InvalidArgument
from credential_core.identity import IdentityResolver
from credential_core.lookup import LookupTokenizer
from credential_core.store import NewUser


@pytest.fixture
def tokenizer():
    return LookupTokenizer("test-salt")


class TestIdentityResolver:
    """Tests for existence checks over lookup tokens."""

    @pytest.mark.asyncio
    async def test_email_alone_matches(self, store, tokenizer):
        """OR semantics: a matching email is enough even with a foreign phone."""
        await store.create_account(
            NewUser(username="u", email="e", phone="p", password_hash="h"),
            email_token=tokenizer.tokenize("a@x.com"),
            phone_token=tokenizer.tokenize("111"),
        )
        resolver = IdentityResolver(store, tokenizer)

        assert await resolver.exists(email="a@x.com", phone="999") is True
        assert await resolver.exists(email="b@x.com", phone="111") is True
        assert await resolver.exists(email="b@x.com", phone="999") is False

    @pytest.mark.asyncio
    async def test_phone_only(self, store, tokenizer):
        await store.create_account(
            NewUser(username="u", email="e", phone="p", password_hash="h"),
            email_token=tokenizer.tokenize("a@x.com"),
            phone_token=tokenizer.tokenize("111"),
        )
        resolver = IdentityResolver(store, tokenizer)

        assert await resolver.exists(phone="111") is True
        assert await resolver.exists(phone="222") is False

    @pytest.mark.asyncio
    async def test_requires_an_identifier(self, store, tokenizer):
        resolver = IdentityResolver(store, tokenizer)

        with pytest.raises(InvalidArgument):
            await resolver.exists()
        with pytest.raises(InvalidArgument):
            await resolver.exists(email="", phone=None)

    @pytest.mark.asyncio
    async def test_call_site_intents(self, store, tokenizer):
        """Login checks one email; signup rejects when either is taken."""
        user = await store.create_account(
            NewUser(username="u", email="e", phone="p", password_hash="h"),
            email_token=tokenizer.tokenize("a@x.com"),
            phone_token=tokenizer.tokenize("111"),
        )
        resolver = IdentityResolver(store, tokenizer)

        assert await resolver.email_registered("a@x.com") is True
        assert await resolver.email_registered("b@x.com") is False
        assert await resolver.identifier_taken("b@x.com", "111") is True
        assert await resolver.identifier_taken("b@x.com", "222") is False
        assert await resolver.resolve_user_id("a@x.com") == user.id
        assert await resolver.resolve_user_id("b@x.com") is None

    @pytest.mark.asyncio
    async def test_lookup_never_uses_ciphertext(self, store, tokenizer):
        """Matching goes through tokens, not the encrypted columns."""
        await store.create_account(
            NewUser(username="u", email="a@x.com", phone="111", password_hash="h"),
            email_token=tokenizer.tokenize("other@x.com"),
        )
        resolver = IdentityResolver(store, tokenizer)

        assert await resolver.exists(email="a@x.com") is False
        assert await resolver.exists(email="other@x.com") is True
