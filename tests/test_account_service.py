# Tests for account registration, login and password management
#
# Coverage:
#   - Login password hashing format and verification
#   - Password policy
#   - Register: policy, duplicate e-mail, first MFA code
#   - Authenticate: no user enumeration (message or timing), MFA re-challenge
#   - Profile rename (verified only, 2-50 characters)
#   - Change password (verified only), reset via e-mail + code
#   - Reminder frequency bounds

import pytest

from securekey.accounts import check_password_policy, hash_password, verify_password
from securekey.core.errors import (
    AccountExistsError,
    AuthenticationError,
    InvalidOrExpiredCode,
    NotFoundError,
    ValidationError,
    VerificationRequiredError,
)
from securekey.mfa import CodePurpose, Unverified

PASSWORD = "Str0ng!Passw0rd"
NEW_PASSWORD = "N3w!Passw0rdX"


# ── Login password hashing ──────────────────────────────────────────


class TestPasswordHashing:

    def test_hash_format(self):
        stored = hash_password("secret", iterations=1000)
        algorithm, iterations, salt, digest = stored.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1000"

    def test_verify(self):
        stored = hash_password("secret", iterations=1000)
        assert verify_password("secret", stored)
        assert not verify_password("Secret", stored)

    def test_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    @pytest.mark.parametrize("stored", ["", "garbage", "md5$1$a$b", "pbkdf2_sha256$x$a$b"])
    def test_malformed_hash_never_verifies(self, stored):
        assert not verify_password("secret", stored)


class TestPasswordPolicy:

    @pytest.mark.parametrize("password", ["Str0ng!Passw0rd", "Aa1@aaaa"])
    def test_accepted(self, password):
        ok, _ = check_password_policy(password)
        assert ok

    @pytest.mark.parametrize("password", [
        "Aa1@aaa",          # too short
        "aa1@aaaa",         # no upper
        "AA1@AAAA",         # no lower
        "Aaa@aaaa",         # no digit
        "Aa1aaaaa",         # no special
        "Aa1#aaaa",         # special outside the allowed set
    ])
    def test_rejected(self, password):
        ok, message = check_password_policy(password)
        assert not ok
        assert message


# ── Registration and login ──────────────────────────────────────────


class TestRegistration:

    def test_register(self, account_service, notifier):
        account = account_service.register("  Carol  ", "Carol@Example.COM", PASSWORD)
        assert account.name == "Carol"
        assert account.email == "carol@example.com"
        assert not account.verified
        assert account.password_hash != PASSWORD
        assert notifier.latest("carol@example.com", CodePurpose.MFA) is not None

    def test_duplicate_email(self, account_service):
        account_service.register("Carol", "carol@example.com", PASSWORD)
        with pytest.raises(AccountExistsError):
            account_service.register("Carol Two", "CAROL@example.com", PASSWORD)

    def test_weak_password(self, account_service):
        with pytest.raises(ValidationError):
            account_service.register("Carol", "carol@example.com", "weak")


class TestAuthenticate:

    def test_success(self, account_service, verified_user):
        account = account_service.authenticate("ALICE@example.com", PASSWORD)
        assert account.id == verified_user.id

    @pytest.mark.parametrize("email,password", [
        ("alice@example.com", "Wr0ng!Password"),
        ("nobody@example.com", PASSWORD),
    ])
    def test_failure_message_does_not_enumerate(self, account_service, verified_user, email, password):
        with pytest.raises(AuthenticationError) as exc_info:
            account_service.authenticate(email, password)
        assert str(exc_info.value) == "Invalid email and/or password"

    def test_valid_session_survives_login(self, account_service, mfa_manager, verified_user):
        account_service.authenticate("alice@example.com", PASSWORD)
        assert mfa_manager.is_valid(verified_user.id)

    def test_lapsed_session_is_ended(self, account_service, account_store, verified_user, clock):
        clock.advance(minutes=11)
        account_service.authenticate("alice@example.com", PASSWORD)
        assert isinstance(account_store.get(verified_user.id).mfa_state, Unverified)

    def test_unknown_email_still_runs_hash_check(self, account_service, monkeypatch):
        import securekey.accounts.service as service_mod

        checked = []
        real_verify = service_mod.verify_password

        def recording_verify(password, stored):
            checked.append(stored)
            return real_verify(password, stored)

        monkeypatch.setattr(service_mod, "verify_password", recording_verify)

        with pytest.raises(AuthenticationError):
            account_service.authenticate("nobody@example.com", PASSWORD)

        assert len(checked) == 1
        assert checked[0].startswith("pbkdf2_sha256$")

    def test_logout_ends_session(self, account_service, mfa_manager, verified_user):
        account_service.logout(verified_user.id)
        assert not mfa_manager.is_valid(verified_user.id)


class TestUpdateProfile:

    def test_rename(self, account_service, verified_user):
        account = account_service.update_profile(verified_user.id, name="  Alice Renamed ")
        assert account.name == "Alice Renamed"
        assert account_service.get(verified_user.id).name == "Alice Renamed"

    def test_no_name_keeps_current(self, account_service, verified_user):
        account = account_service.update_profile(verified_user.id)
        assert account.name == verified_user.name

    @pytest.mark.parametrize("name", ["A", " B ", "x" * 51])
    def test_name_length(self, account_service, verified_user, name):
        with pytest.raises(ValidationError):
            account_service.update_profile(verified_user.id, name=name)

    def test_unverified_account(self, account_service):
        account = account_service.register("Dan", "dan@example.com", PASSWORD)
        with pytest.raises(VerificationRequiredError):
            account_service.update_profile(account.id, name="Daniel")

    def test_rename_keeps_running_session(self, account_service, mfa_manager, verified_user):
        account_service.update_profile(verified_user.id, name="Alice Renamed")
        assert mfa_manager.is_valid(verified_user.id)


# ── Password changes ────────────────────────────────────────────────


class TestChangePassword:

    def test_change(self, account_service, verified_user):
        account_service.change_password(verified_user.id, PASSWORD, NEW_PASSWORD)
        assert account_service.authenticate("alice@example.com", NEW_PASSWORD)
        with pytest.raises(AuthenticationError):
            account_service.authenticate("alice@example.com", PASSWORD)

    def test_wrong_old_password(self, account_service, verified_user):
        with pytest.raises(AuthenticationError):
            account_service.change_password(verified_user.id, "Wr0ng!Password", NEW_PASSWORD)

    def test_new_password_policy(self, account_service, verified_user):
        with pytest.raises(ValidationError):
            account_service.change_password(verified_user.id, PASSWORD, "weak")

    def test_unverified_account(self, account_service):
        account = account_service.register("Dan", "dan@example.com", PASSWORD)
        with pytest.raises(VerificationRequiredError):
            account_service.change_password(account.id, PASSWORD, NEW_PASSWORD)


class TestPasswordReset:

    def test_reset_flow(self, account_service, notifier, verified_user):
        account_service.request_password_reset("alice@example.com")
        code = notifier.latest("alice@example.com", CodePurpose.RESET)

        account_service.reset_password("alice@example.com", code.value, NEW_PASSWORD)

        assert account_service.authenticate("alice@example.com", NEW_PASSWORD)
        assert account_service.get(verified_user.id).reset_code is None

    def test_code_is_single_use(self, account_service, notifier, verified_user):
        account_service.request_password_reset("alice@example.com")
        code = notifier.latest("alice@example.com", CodePurpose.RESET)
        account_service.reset_password("alice@example.com", code.value, NEW_PASSWORD)

        with pytest.raises(InvalidOrExpiredCode):
            account_service.reset_password("alice@example.com", code.value, PASSWORD)

    def test_expired_code(self, account_service, notifier, verified_user, clock):
        account_service.request_password_reset("alice@example.com")
        code = notifier.latest("alice@example.com", CodePurpose.RESET)
        clock.advance(minutes=10)
        with pytest.raises(InvalidOrExpiredCode):
            account_service.reset_password("alice@example.com", code.value, NEW_PASSWORD)

    def test_code_bound_to_email(self, account_service, notifier, verified_user):
        other = account_service.register("Frank", "frank@example.com", PASSWORD)
        account_service.request_password_reset("alice@example.com")
        code = notifier.latest("alice@example.com", CodePurpose.RESET)

        with pytest.raises(InvalidOrExpiredCode):
            account_service.reset_password(other.email, code.value, NEW_PASSWORD)

    def test_reset_does_not_touch_mfa(self, account_service, mfa_manager, notifier, verified_user):
        account_service.request_password_reset("alice@example.com")
        assert mfa_manager.is_valid(verified_user.id)

    def test_unknown_email(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.request_password_reset("nobody@example.com")


class TestReminderFrequency:

    @pytest.mark.parametrize("days", [30, 90, 365])
    def test_accepted(self, account_service, verified_user, days):
        account = account_service.update_reminder_frequency(verified_user.id, days)
        assert account.reminder_frequency_days == days

    @pytest.mark.parametrize("days", [29, 366, 0])
    def test_rejected(self, account_service, verified_user, days):
        with pytest.raises(ValidationError):
            account_service.update_reminder_frequency(verified_user.id, days)
