from .config import BackupSettings, PipelineConfig, SourceStoreConfig, ObjectStoreConfig
from .exceptions import (
    BackupError,
    BackupInProgressError,
    ConfigurationError,
    CorruptBackupError,
    LocalVerificationError,
    UploadVerificationError,
    UnknownTenantError,
)

__version__ = "0.4.0"
__author__ = "SkyPlanner"
__url__ = "https://github.com/skyplanner/skyplanner-backup"
