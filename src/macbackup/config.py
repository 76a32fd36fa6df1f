"""Configuration management for macbackup."""

import os
import tempfile
import tomllib
from collections.abc import Mapping
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import (
    CLOUD_DOWNLOAD_MAX_ATTEMPTS,
    CLOUD_POLL_INTERVAL,
    CLOUD_REGISTER_MAX_ATTEMPTS,
    CLOUD_UPLOAD_MAX_ATTEMPTS,
    DAILY_KEEP_COUNT,
    DAILY_MIN_INTERVAL_HOURS,
    DEFAULT_RETENTION_DAYS,
    LAUNCH_AGENT_LABEL,
)
from .models import BackupFormat

CONFIG_FILE = "config.toml"


def default_config_path() -> Path:
    """Location of the user config file (~/.config/macbackup/config.toml)."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "macbackup" / CONFIG_FILE


def _default_staging_root() -> Path:
    return Path(tempfile.gettempdir()) / "mac_backup_staging"


def _default_daily_root() -> Path:
    return Path.home() / "Library" / "Mobile Documents" / "com~apple~CloudDocs" / "Backups"


class CopyItem(BaseModel):
    """A configuration or data path copied into files/ when it exists."""

    source: str = Field(description="Source path; ~ and globs are expanded")
    dest: str = Field(description="Destination relative to files/")
    description: str = ""
    sudo: bool = False
    optional: bool = True


class InventoryCommand(BaseModel):
    """A command whose stdout is captured into the backup."""

    name: str
    command: list[str]
    output: str = Field(description="Output path relative to the staging entry")
    description: str = ""
    optional: bool = True


DEFAULT_INVENTORY: list[InventoryCommand] = [
    InventoryCommand(
        name="applications",
        command=["ls", "/Applications"],
        output="lists/applications_list.txt",
        description="Applications list",
        optional=False,
    ),
    InventoryCommand(
        name="brew",
        command=["brew", "list"],
        output="lists/brew_list.txt",
        description="brew list",
    ),
    InventoryCommand(
        name="brew-cask",
        command=["brew", "list", "--cask"],
        output="lists/brew_cask_list.txt",
        description="brew list --cask",
    ),
    InventoryCommand(
        name="brewfile",
        command=["brew", "bundle", "dump", "--file=-", "--force"],
        output="files/Brewfile",
        description="Brewfile",
    ),
    InventoryCommand(
        name="mas",
        command=["mas", "list"],
        output="lists/mas_list.txt",
        description="mas list",
    ),
    InventoryCommand(
        name="dock",
        command=["defaults", "read", "com.apple.dock"],
        output="lists/dock_readable.txt",
        description="Dock defaults dump",
    ),
    InventoryCommand(
        name="user-applications",
        command=["ls", "~/Applications"],
        output="lists/user_applications_list.txt",
        description="User applications list",
    ),
    InventoryCommand(
        name="dock-plist",
        command=[
            "plutil",
            "-convert",
            "xml1",
            "-o",
            "-",
            "~/Library/Preferences/com.apple.dock.plist",
        ],
        output="files/com.apple.dock.plist",
        description="Dock plist (xml)",
    ),
    InventoryCommand(
        name="launch-agents",
        command=["ls", "~/Library/LaunchAgents"],
        output="lists/launch_agents.txt",
        description="LaunchAgents list",
    ),
    InventoryCommand(
        name="crontab",
        command=["crontab", "-l"],
        output="files/cronjobs.txt",
        description="crontab",
    ),
    InventoryCommand(
        name="fonts",
        command=["system_profiler", "SPFontsDataType"],
        output="lists/fonts_list.txt",
        description="Fonts list",
    ),
]

DEFAULT_COPY_ITEMS: list[CopyItem] = [
    CopyItem(source="~/Library/Fonts/", dest="fonts_user/", description="User fonts"),
    CopyItem(source="/Library/Fonts/", dest="fonts_system/", description="System fonts", sudo=True),
    *[
        CopyItem(
            source=f"~/Library/Audio/Plug-Ins/{kind}/",
            dest=f"audio_plugins_user/{kind}/",
            description=f"User audio plugins ({kind})",
        )
        for kind in ("Components", "VST", "VST3", "MAS", "ARA", "AAX")
    ],
    *[
        CopyItem(
            source=f"/Library/Audio/Plug-Ins/{kind}/",
            dest=f"audio_plugins_sys/{kind}/",
            description=f"System audio plugins ({kind})",
            sudo=True,
        )
        for kind in ("Components", "VST", "VST3", "MAS", "ARA", "AAX")
    ],
    CopyItem(
        source="~/Library/Audio/MIDI Drivers/",
        dest="midi/MIDI Drivers/",
        description="MIDI drivers",
    ),
    CopyItem(
        source="~/Library/Audio/MIDI Configurations/",
        dest="midi/MIDI Configurations/",
        description="MIDI configurations",
    ),
    CopyItem(
        source="~/Music/Audio Music Apps/", dest="Audio Music Apps/", description="Logic/DAW data"
    ),
    CopyItem(source="~/Music/Ableton/", dest="Ableton/", description="Ableton data"),
    CopyItem(source="~/Documents/Pro Tools/", dest="Pro Tools/", description="Pro Tools data"),
    CopyItem(source="~/.ssh/", dest="ssh/", description="SSH configs"),
    CopyItem(source="~/.gnupg/", dest="gnupg/", description="GPG configs"),
    CopyItem(source="~/.config/", dest="dot_config/", description="dot-config dir"),
    *[
        CopyItem(source=f"~/{name}", dest=name, description=name)
        for name in (
            ".zshrc",
            ".bashrc",
            ".bash_profile",
            ".zprofile",
            ".profile",
            ".gitconfig",
            ".gitignore_global",
        )
    ],
    CopyItem(source="~/bin/", dest="bin/", description="bin"),
    CopyItem(source="~/.local/bin/", dest="local_bin/", description="~/.local/bin"),
    CopyItem(
        source="~/Library/Application Support/Code/User/",
        dest="vscode_user/",
        description="VS Code User settings",
    ),
    CopyItem(
        source="~/Library/Application Support/Sublime Text*/Packages/User/",
        dest="sublime_user/",
        description="Sublime User settings",
    ),
    CopyItem(
        source="~/Library/Application Support/Cursor/User/",
        dest="cursor_user/",
        description="Cursor settings",
    ),
    CopyItem(
        source="~/.cursor/extensions/", dest="cursor_extensions/", description="Cursor extensions"
    ),
    CopyItem(
        source="~/Library/ColorSync/Profiles/",
        dest="colorsync_user/",
        description="ColorSync profiles (user)",
    ),
    CopyItem(
        source="/Library/ColorSync/Profiles/",
        dest="colorsync_system/",
        description="ColorSync profiles (system)",
        sudo=True,
    ),
    CopyItem(
        source="~/Library/QuickLook/",
        dest="quicklook_user/",
        description="QuickLook plugins (user)",
    ),
    CopyItem(
        source="/Library/QuickLook/",
        dest="quicklook_system/",
        description="QuickLook plugins (system)",
        sudo=True,
    ),
    CopyItem(source="~/Library/Mail/", dest="apple_mail/Mail/", description="Apple Mail data"),
    CopyItem(
        source="~/Library/Preferences/com.apple.mail.plist",
        dest="apple_mail/com.apple.mail.plist",
        description="Apple Mail preferences",
    ),
    CopyItem(source="~/Library/Services/", dest="services/", description="Services"),
    CopyItem(source="~/Library/Shortcuts/", dest="shortcuts/", description="Shortcuts"),
    CopyItem(source="~/Library/Calendars/", dest="calendars/", description="Calendars"),
]

DEFAULT_HOME_EXCLUDES: list[str] = [
    ".Trash",
    ".DS_Store",
    "Library/Caches",
    "Library/Logs",
    "Library/Mobile Documents",
    "Library/CloudStorage",
    "Library/Messages",
    "Library/Containers",
    "Library/Developer",
    "Library/Application Support/Steam/steamapps",
    "Library/Application Support/FileProvider",
    "node_modules",
    ".rvm",
    ".rbenv",
    ".pyenv",
    ".local/lib/python*",
    ".cargo",
    "go",
    ".npm",
    ".nvm",
    ".docker",
    ".aws",
    ".kube",
    ".gcloud",
    ".azure",
    "Dropbox",
    "Downloads",
    "Documents",
    "Desktop",
    "Pictures",
    "Movies",
]


class BackupConfig(BaseModel):
    """Final destination and packaging."""

    root: Path = Path("/Volumes/BACKUP")
    format: BackupFormat = BackupFormat.TAR
    clean: bool = False


class StagingConfig(BaseModel):
    """Local scratch area where a backup is assembled."""

    root: Path = Field(default_factory=_default_staging_root)
    # Kept raw: 0, empty or non-numeric values disable pruning
    retention_days: int | str = DEFAULT_RETENTION_DAYS


class CloudConfig(BaseModel):
    """iCloud Drive readiness polling budgets."""

    poll_interval: float = CLOUD_POLL_INTERVAL
    backoff: float = 1.0
    max_interval: float | None = None
    register_attempts: int = CLOUD_REGISTER_MAX_ATTEMPTS
    upload_attempts: int = CLOUD_UPLOAD_MAX_ATTEMPTS
    download_attempts: int = CLOUD_DOWNLOAD_MAX_ATTEMPTS
    brctl: str | None = None  # Override brctl discovery
    offload_existing: bool = True


class ArchivesConfig(BaseModel):
    """Compressed archives of large user folders."""

    enabled: bool = False
    folders: list[str] = Field(
        default=["Desktop", "Documents", "Downloads", "Pictures", "Movies"]
    )
    excludes: list[str] = Field(default=["*/node_modules"])
    pictures_excludes: list[str] = Field(
        default=[
            "Pictures/Photos Library.photoslibrary",
            "Pictures/*Photos Library*.photoslibrary",
            "Pictures/iPhoto Library.photolibrary",
            "Pictures/*iPhoto*.photolibrary",
        ]
    )


class HomeSyncConfig(BaseModel):
    """Whole home folder rsync copy."""

    enabled: bool = True
    excludes: list[str] = Field(default_factory=lambda: list(DEFAULT_HOME_EXCLUDES))


class ScheduleConfig(BaseModel):
    """Unattended daily run settings."""

    # Destination of daily runs, separate from backup.root
    root: Path = Field(default_factory=_default_daily_root)
    min_interval_hours: float = DAILY_MIN_INTERVAL_HOURS
    keep: int = DAILY_KEEP_COUNT
    notify: bool = True
    label: str = LAUNCH_AGENT_LABEL
    hour: int = 3
    minute: int = 0


class MacBackupConfig(BaseModel):
    """Root configuration for macbackup."""

    backup: BackupConfig = Field(default_factory=BackupConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    archives: ArchivesConfig = Field(default_factory=ArchivesConfig)
    home: HomeSyncConfig = Field(default_factory=HomeSyncConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    inventory: list[InventoryCommand] = Field(
        default_factory=lambda: [c.model_copy() for c in DEFAULT_INVENTORY]
    )
    copies: list[CopyItem] = Field(
        default_factory=lambda: [c.model_copy() for c in DEFAULT_COPY_ITEMS]
    )


def apply_env_overrides(
    config: MacBackupConfig, environ: Mapping[str, str] | None = None
) -> MacBackupConfig:
    """Apply BACKUP_ROOT, STAGING_ROOT and STAGING_RETENTION_DAYS overrides.

    BACKUP_ROOT sets both the manual and the daily destination.

    Args:
        config: Loaded configuration
        environ: Environment mapping (defaults to os.environ)

    Returns:
        A new config with overrides applied
    """
    env = os.environ if environ is None else environ
    updated = config.model_copy(deep=True)
    if env.get("BACKUP_ROOT"):
        updated.backup.root = Path(env["BACKUP_ROOT"]).expanduser()
        updated.schedule.root = updated.backup.root
    if env.get("STAGING_ROOT"):
        updated.staging.root = Path(env["STAGING_ROOT"]).expanduser()
    if "STAGING_RETENTION_DAYS" in env:
        updated.staging.retention_days = env["STAGING_RETENTION_DAYS"]
    return updated


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> MacBackupConfig:
    """Load config from TOML and apply environment overrides.

    Args:
        path: Config file path (defaults to ~/.config/macbackup/config.toml)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Loaded configuration, or defaults if the file doesn't exist
    """
    config_path = path or default_config_path()
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        config = MacBackupConfig.model_validate(data)
    else:
        config = MacBackupConfig()
    return apply_env_overrides(config, environ)


def write_config_template(path: Path | None = None) -> Path:
    """Write default config.toml template.

    The copy catalog and inventory are left out so the built-in defaults
    apply; add `[[copies]]` or `[[inventory]]` tables to replace them.

    Args:
        path: Destination (defaults to ~/.config/macbackup/config.toml)

    Returns:
        Path to the written config file
    """
    config_path = path or default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    template = {
        "backup": {"root": "/Volumes/BACKUP", "format": "tar", "clean": False},
        "staging": {
            "root": str(_default_staging_root()),
            "retention_days": DEFAULT_RETENTION_DAYS,
        },
        "cloud": {
            "poll_interval": CLOUD_POLL_INTERVAL,
            "register_attempts": CLOUD_REGISTER_MAX_ATTEMPTS,
            "upload_attempts": CLOUD_UPLOAD_MAX_ATTEMPTS,
            "download_attempts": CLOUD_DOWNLOAD_MAX_ATTEMPTS,
            "offload_existing": True,
        },
        "archives": {
            "enabled": False,
            "folders": ["Desktop", "Documents", "Downloads", "Pictures", "Movies"],
        },
        "home": {"enabled": True},
        "schedule": {
            "root": str(_default_daily_root()),
            "min_interval_hours": DAILY_MIN_INTERVAL_HOURS,
            "keep": DAILY_KEEP_COUNT,
            "notify": True,
            "hour": 3,
            "minute": 0,
        },
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
