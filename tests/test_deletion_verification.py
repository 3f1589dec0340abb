"""Tests for the emailed deletion code store."""

from datetime import UTC, datetime, timedelta

import pytest

from workorders.services.deletion_verification import (
    DeletionVerificationStore,
    VerificationCodeMismatch,
    VerificationExpired,
    VerificationNotFound,
    VerificationWrongUser,
    generate_verification_code,
)
from workorders.services.email import EmailSendError


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 10, 19, 6, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(mailer, clock):
    return DeletionVerificationStore(mailer=mailer, clock=clock)


async def issue(store, entity_id="WO-1", user="admin1"):
    return await store.issue(
        entity_id,
        user,
        recipient_email=f"{user}@example.com",
        work_order_number=f"NUM-{entity_id}",
    )


class TestGenerateCode:
    def test_six_digits_without_leading_zero(self):
        for _ in range(200):
            code = generate_verification_code()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"


class TestIssue:
    async def test_returns_code_and_stores_entry(self, store, clock):
        code = await issue(store)

        entry = store.get("WO-1")
        assert entry.code == code
        assert entry.issued_to == "admin1"
        assert entry.expires_at == clock.now + timedelta(minutes=10)
        assert "WO-1" in store
        assert len(store) == 1

    async def test_emails_code_to_requester(self, store, mailer):
        code = await issue(store)

        mailer.send.assert_awaited_once()
        to, subject, html = mailer.send.await_args.args
        assert to == "admin1@example.com"
        assert "NUM-WO-1" in subject
        assert code in html
        assert "10 minutes" in html

    async def test_email_failure_propagates_and_keeps_entry(self, store, mailer):
        mailer.send.side_effect = EmailSendError("SMTP down")

        with pytest.raises(EmailSendError):
            await issue(store)

        assert "WO-1" in store

    async def test_reissue_invalidates_previous_code(self, store, monkeypatch):
        codes = iter(["111111", "222222"])
        monkeypatch.setattr(
            "workorders.services.deletion_verification.generate_verification_code",
            lambda: next(codes),
        )
        first = await issue(store)
        second = await issue(store)

        assert len(store) == 1
        with pytest.raises(VerificationCodeMismatch):
            store.verify("WO-1", first, "admin1")
        store.verify("WO-1", second, "admin1")

    async def test_custom_expiry(self, mailer, clock):
        store = DeletionVerificationStore(mailer=mailer, expiry_minutes=2, clock=clock)

        await issue(store)

        assert store.get("WO-1").expires_at == clock.now + timedelta(minutes=2)
        assert "2 minutes" in mailer.send.await_args.args[2]


class TestVerify:
    def test_unknown_entity_is_not_found(self, store):
        with pytest.raises(VerificationNotFound) as exc_info:
            store.verify("WO-404", "123456", "admin1")

        assert exc_info.value.status_code == 404
        assert exc_info.value.entity_id == "WO-404"

    async def test_success_consumes_entry(self, store):
        code = await issue(store)

        store.verify("WO-1", code, "admin1")

        assert "WO-1" not in store
        with pytest.raises(VerificationNotFound):
            store.verify("WO-1", code, "admin1")

    async def test_expired_code_removes_entry(self, store, clock):
        code = await issue(store)
        clock.advance(minutes=10, seconds=1)

        with pytest.raises(VerificationExpired) as exc_info:
            store.verify("WO-1", code, "admin1")

        assert exc_info.value.status_code == 400
        assert "WO-1" not in store
        with pytest.raises(VerificationNotFound):
            store.verify("WO-1", code, "admin1")

    async def test_issuing_purges_abandoned_codes(self, store, clock):
        stale = await issue(store, entity_id="WO-1")
        clock.advance(minutes=11)

        await issue(store, entity_id="WO-2")

        assert "WO-1" not in store
        assert len(store) == 1
        with pytest.raises(VerificationNotFound):
            store.verify("WO-1", stale, "admin1")

    async def test_purge_keeps_live_codes(self, store, clock):
        await issue(store, entity_id="WO-1")
        clock.advance(minutes=5)
        await issue(store, entity_id="WO-2")
        clock.advance(minutes=6)

        assert store.purge_expired() == 1
        assert "WO-2" in store
        assert store.purge_expired() == 0

    async def test_code_valid_at_exact_expiry(self, store, clock):
        code = await issue(store)
        clock.advance(minutes=10)

        store.verify("WO-1", code, "admin1")

    async def test_expiry_checked_before_code(self, store, clock):
        await issue(store)
        clock.advance(minutes=11)

        with pytest.raises(VerificationExpired):
            store.verify("WO-1", "not-the-code", "admin1")

    async def test_wrong_code_keeps_entry_for_retry(self, store):
        code = await issue(store)
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(VerificationCodeMismatch) as exc_info:
            store.verify("WO-1", wrong, "admin1")

        assert exc_info.value.status_code == 400
        assert "WO-1" in store
        store.verify("WO-1", code, "admin1")

    async def test_wrong_user_keeps_entry_for_issuer(self, store):
        code = await issue(store)

        with pytest.raises(VerificationWrongUser) as exc_info:
            store.verify("WO-1", code, "admin2")

        assert exc_info.value.status_code == 403
        assert "WO-1" in store
        store.verify("WO-1", code, "admin1")

    async def test_code_checked_before_user(self, store):
        await issue(store)

        with pytest.raises(VerificationCodeMismatch):
            store.verify("WO-1", "000000", "admin2")

    async def test_non_ascii_code_is_a_mismatch(self, store):
        await issue(store)

        with pytest.raises(VerificationCodeMismatch):
            store.verify("WO-1", "١٢٣٤٥٦", "admin1")

    async def test_entries_are_independent_per_entity(self, store):
        code_1 = await issue(store, "WO-1")
        code_2 = await issue(store, "WO-2")

        store.verify("WO-2", code_2, "admin1")

        assert "WO-1" in store
        store.verify("WO-1", code_1, "admin1")

    async def test_issue_then_wrong_user_then_success_then_replay(self, store):
        code = await issue(store, "WO-1", "admin1")
        assert len(code) == 6 and code.isdigit()

        with pytest.raises(VerificationWrongUser):
            store.verify("WO-1", code, "admin2")
        store.verify("WO-1", code, "admin1")
        with pytest.raises(VerificationNotFound):
            store.verify("WO-1", code, "admin1")
