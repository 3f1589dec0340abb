# Business Logic Services
from workorders.services.backup import (
    BackupResult,
    clean_old_backups,
    create_database_backup,
    run_backup_job,
)
from workorders.services.backup_scheduler import BackupScheduler
from workorders.services.deletion_verification import (
    DeletionVerificationStore,
    VerificationError,
)
from workorders.services.email import EmailSender, EmailSendError

__all__ = [
    "BackupResult",
    "BackupScheduler",
    "DeletionVerificationStore",
    "EmailSendError",
    "EmailSender",
    "VerificationError",
    "clean_old_backups",
    "create_database_backup",
    "run_backup_job",
]
