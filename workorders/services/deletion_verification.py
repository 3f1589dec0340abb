"""Emailed one-time codes that gate work order deletion.

A pending verification is held in process memory, keyed by the work
order being deleted. Issuing a new code for the same work order replaces
the previous one. A restart drops every pending code; codes only live
for a few minutes and the requester can simply ask for a new one.
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Request, status

from workorders.logging_config import get_logger
from workorders.services.email import EmailSender, send_deletion_confirmation_email

logger = get_logger(__name__)

CODE_LENGTH = 6
DEFAULT_CODE_EXPIRY_MINUTES = 10


class VerificationError(Exception):
    """A submitted deletion code was rejected."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Verification failed"

    def __init__(self, entity_id: str):
        super().__init__(self.message)
        self.entity_id = entity_id


class VerificationNotFound(VerificationError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Verification code not found or expired"


class VerificationExpired(VerificationError):
    message = "Verification code has expired"


class VerificationCodeMismatch(VerificationError):
    message = "Invalid verification code"


class VerificationWrongUser(VerificationError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Verification code was not issued to this user"


@dataclass(frozen=True)
class PendingVerification:
    """A deletion request waiting for its code."""

    entity_id: str
    code: str
    issued_to: str
    expires_at: datetime


def generate_verification_code() -> str:
    """Return a random CODE_LENGTH-digit numeric code (no leading zero)."""
    low = 10 ** (CODE_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


class DeletionVerificationStore:
    """Process-local map of work order id -> pending deletion code.

    One instance is created at startup and shared by request handlers.
    Access happens on the event loop only, so no locking is needed.
    Concurrent requests for the same work order race: the later issue()
    silently invalidates the earlier code.
    """

    def __init__(
        self,
        mailer: EmailSender | None = None,
        expiry_minutes: int = DEFAULT_CODE_EXPIRY_MINUTES,
        clock: Callable[[], datetime] | None = None,
    ):
        self._pending: dict[str, PendingVerification] = {}
        self._mailer = mailer
        self.expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock or (lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._pending

    def get(self, entity_id: str) -> PendingVerification | None:
        """Return the pending entry for entity_id without touching it."""
        return self._pending.get(entity_id)

    def purge_expired(self) -> int:
        """Drop every entry whose window has passed. Returns how many."""
        now = self._clock()
        expired = [
            key for key, entry in self._pending.items() if now > entry.expires_at
        ]
        for key in expired:
            del self._pending[key]
        if expired:
            logger.debug("Purged expired deletion codes", count=len(expired))
        return len(expired)

    def create(self, entity_id: str, issued_to: str) -> PendingVerification:
        """Store a fresh code for entity_id, replacing any pending one.

        Expired codes left behind by abandoned requests are purged first.
        Verifying a purged code reports it as not found.
        """
        self.purge_expired()
        entry = PendingVerification(
            entity_id=entity_id,
            code=generate_verification_code(),
            issued_to=issued_to,
            expires_at=self._clock() + self.expiry,
        )
        if entity_id in self._pending:
            logger.info(
                "Replacing pending deletion code",
                entity_id=entity_id,
                issued_to=issued_to,
            )
        self._pending[entity_id] = entry
        return entry

    async def issue(
        self,
        entity_id: str,
        issued_to: str,
        recipient_email: str,
        work_order_number: str,
    ) -> str:
        """Create a code and email it to the requesting user.

        Args:
            entity_id: Work order awaiting deletion.
            issued_to: Id of the requesting user.
            recipient_email: Where to send the code.
            work_order_number: Shown in the email so the user knows what
                they are confirming.

        Returns:
            The issued code.

        Raises:
            EmailSendError: If the mail could not be sent. The pending
                entry is kept; the user can request another code.
        """
        entry = self.create(entity_id, issued_to)
        logger.info(
            "Deletion code issued",
            entity_id=entity_id,
            issued_to=issued_to,
            expires_at=entry.expires_at.isoformat(),
        )

        await send_deletion_confirmation_email(
            recipient_email,
            work_order_number,
            entry.code,
            expire_minutes=int(self.expiry.total_seconds() // 60),
            sender=self._mailer,
        )
        return entry.code

    def verify(self, entity_id: str, code: str, requesting_user: str) -> None:
        """Check a submitted code and consume it on success.

        Checks run in order: presence, expiry, code, user. Only success
        and expiry remove the entry; a wrong code or wrong user leaves it
        in place so the right user can retry until it expires.

        Raises:
            VerificationNotFound: Nothing pending for entity_id.
            VerificationExpired: The code's window has passed (entry removed).
            VerificationCodeMismatch: The code does not match.
            VerificationWrongUser: The code was issued to someone else.
        """
        entry = self._pending.get(entity_id)
        if entry is None:
            raise VerificationNotFound(entity_id)

        if self._clock() > entry.expires_at:
            del self._pending[entity_id]
            logger.info("Deletion code expired", entity_id=entity_id)
            raise VerificationExpired(entity_id)

        if not secrets.compare_digest(entry.code.encode(), code.encode()):
            logger.warning(
                "Deletion code mismatch",
                entity_id=entity_id,
                requesting_user=requesting_user,
            )
            raise VerificationCodeMismatch(entity_id)

        if entry.issued_to != requesting_user:
            logger.warning(
                "Deletion code submitted by another user",
                entity_id=entity_id,
                issued_to=entry.issued_to,
                requesting_user=requesting_user,
            )
            raise VerificationWrongUser(entity_id)

        del self._pending[entity_id]
        logger.info(
            "Deletion code verified",
            entity_id=entity_id,
            requesting_user=requesting_user,
        )


def get_verification_store(request: Request) -> DeletionVerificationStore:
    """FastAPI dependency returning the process-wide store."""
    return request.app.state.verification_store
