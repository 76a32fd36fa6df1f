"""Outcomes of waiting on iCloud Drive sync state."""

from enum import Enum


class CloudOutcome(str, Enum):
    """How an upload-then-evict wait ended.

    Every value is a normal return; none of them fail a backup.
    """

    MISSING = "missing"
    NOT_CLOUD_PATH = "not_cloud_path"
    NO_METADATA_TOOL = "no_metadata_tool"
    NOT_REGISTERED = "not_registered"
    UPLOAD_TIMEOUT = "upload_timeout"
    UPLOADED = "uploaded"
    EVICTED = "evicted"
