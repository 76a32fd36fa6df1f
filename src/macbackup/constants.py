"""Constants for macbackup."""

# Staging layout
LOCK_DIR_NAME = ".backup_lock"
LOCK_PID_FILE = "pid"
LOCK_ENTRY_FILE = "entry"
BACKUP_PREFIX = "System_Backup_"
STAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_RETENTION_DAYS = 3
ARCHIVE_SUFFIXES = (".tgz", ".zip")
LOG_FILE_NAME = "backup_log.txt"
SUMMARY_FILE_NAME = "backup_summary.txt"

# Cloud polling (seconds / attempts)
CLOUD_POLL_INTERVAL = 2.0
CLOUD_REGISTER_MAX_ATTEMPTS = 60  # ~2 minutes
CLOUD_UPLOAD_MAX_ATTEMPTS = 900  # ~30 minutes
CLOUD_DOWNLOAD_MAX_ATTEMPTS = 900  # ~30 minutes
BRCTL_FALLBACK = (
    "/System/Library/PrivateFrameworks/CloudDocsDaemon.framework/Versions/A/Support/brctl"
)

# Subprocess timeouts (seconds)
CLOUD_COMMAND_TIMEOUT = 60
INVENTORY_TIMEOUT = 300
NOTIFY_TIMEOUT = 10
LAUNCHCTL_TIMEOUT = 30

# Privilege keep-alive
SUDO_REFRESH_INTERVAL = 60

# Daily scheduler
DAILY_MIN_INTERVAL_HOURS = 48
DAILY_KEEP_COUNT = 5
LAST_RUN_FILE = ".last_backup_timestamp"
LAUNCH_AGENT_LABEL = "com.osxbackup.daily"
