"""
Integration Tests for Account Flows
====================================
Signup, login and password reset over the in-memory store.
"""

import pytest

from credential_core.config import CredentialSettings
from credential_core.errors import (
    AlreadyExists,
    ConfigurationError,
    DeliveryError,
    Expired,
    InvalidArgument,
    InvalidCredential,
    NotFound,
)
from credential_core.service import AccountService, SessionPrincipal

PASSWORD = "Str0ng!pass"
NEW_PASSWORD = "N3w!password"


@pytest.fixture
def service(settings, store, mailer, clock):
    return AccountService.from_settings(settings, store, mailer=mailer, clock=clock)


async def _signup(service, email="a@x.com", phone="1112223333"):
    return await service.signup("john", email, phone, PASSWORD)


class TestSignup:
    """Tests for account creation."""

    @pytest.mark.asyncio
    async def test_signup_returns_principal(self, service):
        principal = await _signup(service)

        assert isinstance(principal, SessionPrincipal)
        assert principal.email == "a@x.com"
        assert principal.user_id

    @pytest.mark.asyncio
    async def test_pii_is_encrypted_at_rest(self, service, store):
        principal = await _signup(service)
        user = store.users[principal.user_id]

        assert "a@x.com" not in user.email
        assert "1112223333" not in user.phone
        assert user.username != "john"
        assert user.password_hash.startswith("$argon2id$")
        assert service.cipher.decrypt(user.email) == "a@x.com"

    @pytest.mark.asyncio
    async def test_tokens_derived_from_raw_input(self, service, store):
        principal = await _signup(service)
        token = store.tokens[principal.user_id]

        assert token.email_token == service.tokenizer.tokenize("a@x.com")
        assert token.phone_token == service.tokenizer.tokenize("1112223333")

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, service):
        await _signup(service)

        with pytest.raises(AlreadyExists):
            await _signup(service, phone="9998887777")

    @pytest.mark.asyncio
    async def test_duplicate_phone_rejected(self, service):
        await _signup(service)

        with pytest.raises(AlreadyExists):
            await _signup(service, email="b@x.com")

    @pytest.mark.asyncio
    async def test_invalid_input_names_fields_only(self, service):
        with pytest.raises(InvalidArgument) as exc_info:
            await service.signup("jo", "not-an-email", "123", "weakpass")

        assert exc_info.value.details == ["email", "password", "phone", "username"]
        assert "weakpass" not in str(exc_info.value)

    def test_missing_secrets_fail_at_wiring(self, store, mailer, clock, settings):
        """A service without its encryption key or ticket secret is never built."""
        with pytest.raises(ConfigurationError):
            AccountService.from_settings(
                CredentialSettings(token_salt="s", ticket_secret="t", hasher=settings.hasher),
                store,
                mailer=mailer,
                clock=clock,
            )
        with pytest.raises(ConfigurationError):
            AccountService.from_settings(
                CredentialSettings(token_salt="s", encryption_key="k", hasher=settings.hasher),
                store,
                mailer=mailer,
                clock=clock,
            )

    @pytest.mark.asyncio
    async def test_email_kept_as_typed(self, service, store):
        """Mixed-case addresses are validated but stored and tokenized verbatim."""
        principal = await _signup(service, email="Bob@Example.COM")
        token = store.tokens[principal.user_id]

        assert principal.email == "Bob@Example.COM"
        assert token.email_token == service.tokenizer.tokenize("Bob@Example.COM")
        assert service.cipher.decrypt(store.users[principal.user_id].email) == "Bob@Example.COM"

    @pytest.mark.asyncio
    async def test_display_name_form_rejected(self, service):
        with pytest.raises(InvalidArgument) as exc_info:
            await _signup(service, email="Bob <bob@example.com>")

        assert exc_info.value.details == ["email"]


class TestLogin:
    """Tests for password login."""

    @pytest.mark.asyncio
    async def test_login_success(self, service):
        created = await _signup(service)

        principal = await service.login("a@x.com", PASSWORD)

        assert principal == created

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        await _signup(service)

        with pytest.raises(InvalidCredential):
            await service.login("a@x.com", PASSWORD + "x")

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(NotFound):
            await service.login("nobody@x.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_unknown_email_still_hashes(self, service):
        """Unknown accounts pay the same Argon2 cost as known ones, from the first attempt."""
        dummy = service._dummy_hash
        assert dummy.startswith("$argon2id$")

        with pytest.raises(NotFound):
            await service.login("nobody@x.com", PASSWORD)

        assert service._dummy_hash == dummy

    @pytest.mark.asyncio
    async def test_public_error_hides_detail(self, service):
        with pytest.raises(NotFound) as exc_info:
            await service.login("nobody@x.com", PASSWORD)

        public = exc_info.value.to_public()
        assert public["error"] == "not_found"
        assert "email" not in public["message"].lower()


class TestPasswordReset:
    """Tests for the OTP password reset flow."""

    @pytest.mark.asyncio
    async def test_full_reset_flow(self, service, mailer, store):
        principal = await _signup(service)

        await service.request_password_reset(principal.user_id, "a@x.com")
        assert mailer.sent[-1][0] == "a@x.com"

        ticket = await service.verify_password_reset(principal.user_id, mailer.last_code())
        assert store.otps_for_user(principal.user_id) == []

        await service.reset_password(ticket, NEW_PASSWORD)

        assert await service.login("a@x.com", NEW_PASSWORD) == principal
        with pytest.raises(InvalidCredential):
            await service.login("a@x.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_mixed_case_email_round_trip(self, service, mailer):
        """The exact address used at signup works for login and reset."""
        principal = await _signup(service, email="Bob@Example.COM")

        assert await service.login("Bob@Example.COM", PASSWORD) == principal
        await service.request_password_reset(principal.user_id, "Bob@Example.COM")

        assert mailer.sent[-1][0] == "Bob@Example.COM"

    @pytest.mark.asyncio
    async def test_ticket_is_single_use(self, service, mailer):
        """A ticket cannot be replayed once the password has changed."""
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        ticket = await service.verify_password_reset(principal.user_id, mailer.last_code())

        await service.reset_password(ticket, NEW_PASSWORD)

        with pytest.raises(InvalidCredential):
            await service.reset_password(ticket, "An0ther!pass")
        assert await service.login("a@x.com", NEW_PASSWORD) == principal

    @pytest.mark.asyncio
    async def test_ticket_void_after_other_password_change(self, service, mailer, store):
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        ticket = await service.verify_password_reset(principal.user_id, mailer.last_code())

        await store.update_user_password(principal.user_id, "$argon2id$changed-elsewhere")

        with pytest.raises(InvalidCredential):
            await service.reset_password(ticket, NEW_PASSWORD)

    @pytest.mark.asyncio
    async def test_reset_requires_registered_email(self, service, mailer, store):
        principal = await _signup(service)

        with pytest.raises(InvalidArgument):
            await service.request_password_reset(principal.user_id, "b@x.com")

        assert mailer.sent == []
        assert store.otps_for_user(principal.user_id) == []

    @pytest.mark.asyncio
    async def test_reset_unknown_user(self, service):
        with pytest.raises(NotFound):
            await service.request_password_reset("missing", "a@x.com")

    @pytest.mark.asyncio
    async def test_delivery_failure(self, service, mailer, store):
        principal = await _signup(service)
        mailer.succeed = False

        with pytest.raises(DeliveryError):
            await service.request_password_reset(principal.user_id, "a@x.com")

        assert store.otps_for_user(principal.user_id) == []

    @pytest.mark.asyncio
    async def test_wrong_code(self, service, mailer):
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        wrong = str((int(mailer.last_code()) + 1) % 1_000_000).zfill(6)

        with pytest.raises(InvalidCredential):
            await service.verify_password_reset(principal.user_id, wrong)

    @pytest.mark.asyncio
    async def test_expired_code(self, service, mailer, clock):
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        clock.advance(121)

        with pytest.raises(Expired):
            await service.verify_password_reset(principal.user_id, mailer.last_code())

    @pytest.mark.asyncio
    async def test_no_code_issued(self, service):
        principal = await _signup(service)

        with pytest.raises(NotFound):
            await service.verify_password_reset(principal.user_id, "123456")

    @pytest.mark.asyncio
    async def test_tampered_ticket(self, service, mailer):
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        ticket = await service.verify_password_reset(principal.user_id, mailer.last_code())

        with pytest.raises(InvalidCredential):
            await service.reset_password(ticket[:-1] + ("0" if ticket[-1] != "0" else "1"), NEW_PASSWORD)
        with pytest.raises(InvalidCredential):
            await service.reset_password("garbage", NEW_PASSWORD)

    @pytest.mark.asyncio
    async def test_stale_ticket(self, service, mailer, clock):
        principal = await _signup(service)
        await service.request_password_reset(principal.user_id, "a@x.com")
        ticket = await service.verify_password_reset(principal.user_id, mailer.last_code())
        clock.advance(601)

        with pytest.raises(InvalidCredential):
            await service.reset_password(ticket, NEW_PASSWORD)

    @pytest.mark.asyncio
    async def test_empty_new_password(self, service):
        with pytest.raises(InvalidArgument):
            await service.reset_password("anything", "")


class TestProfile:
    """Tests for decrypted profile access."""

    @pytest.mark.asyncio
    async def test_load_profile(self, service):
        principal = await _signup(service)

        profile = await service.load_profile(principal.user_id)

        assert profile.username == "john"
        assert profile.email == "a@x.com"
        assert profile.phone == "1112223333"

    @pytest.mark.asyncio
    async def test_load_profile_unknown(self, service):
        with pytest.raises(NotFound):
            await service.load_profile("missing")
