"""
Pydantic schemas for data validation and serialization.

API models serialise with camelCase keys to match the front-end; Graph
payload models mirror the subset of the Microsoft Graph driveItem resource
that the scanner consumes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiModel(BaseModel):
    """Base for models exchanged over the HTTP API."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileInfo(ApiModel):
    """A file discovered during a scan. Identity is (drive_id, id)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    path: str
    size: int = Field(ge=0)
    hash: str = ""
    hash_algorithm: str = ""
    last_modified: datetime = datetime.min.replace(tzinfo=timezone.utc)
    web_url: str = ""
    site_id: str = ""
    drive_id: str = ""


class DuplicateGroup(ApiModel):
    """Files sharing one non-empty content hash."""
    hash: str
    hash_algorithm: str = ""
    file_size: int
    files: List[FileInfo] = []
    selected_true_copy: Optional[FileInfo] = None

    @computed_field(alias="totalWastedSpace")
    @property
    def total_wasted_space(self) -> int:
        return (len(self.files) - 1) * self.file_size

    @computed_field(alias="selectedKeepId")
    @property
    def selected_keep_id(self) -> Optional[str]:
        return self.selected_true_copy.id if self.selected_true_copy else None

    def find_file(self, file_id: str) -> Optional[FileInfo]:
        return next((f for f in self.files if f.id == file_id), None)


class ScanStatus(str, Enum):
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"


class ScanReport(ApiModel):
    """Outcome of scanning one site."""
    scan_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    scan_date: datetime = Field(default_factory=_utcnow)
    site_url: str = ""
    total_files_scanned: int = 0
    duplicate_files_found: int = 0
    total_space_wasted: int = 0
    duplicate_groups: List[DuplicateGroup] = []
    status: ScanStatus = ScanStatus.IN_PROGRESS
    error_message: Optional[str] = None


class ScanRequest(ApiModel):
    site_url: str = ""


class ShortcutEntry(BaseModel):
    """One shortcut produced by a replacement run."""
    path: str
    drive_id: str
    target_path: str = ""
    target_url: str = ""


class ReplacementSelection(ApiModel):
    hash: str = ""
    true_copy_file_id: str = ""


class ReplacementRequest(ApiModel):
    scan_id: str = ""
    selections: List[ReplacementSelection] = []


class ReplacementDetail(ApiModel):
    original_file_id: str = ""
    original_path: str = ""
    shortcut_path: str = ""
    success: bool = False
    error_message: Optional[str] = None


class ReplacementResult(ApiModel):
    scan_id: str = ""
    total_replacements: int = 0
    successful_replacements: int = 0
    failed_replacements: int = 0
    details: List[ReplacementDetail] = []

    @computed_field(alias="allSuccessful")
    @property
    def all_successful(self) -> bool:
        return self.failed_replacements == 0


class BrokenShortcutDetail(ApiModel):
    shortcut_path: str = ""
    target_path: str = ""
    issue: str = ""


class VerificationResult(ApiModel):
    scan_id: str = ""
    verification_date: datetime = Field(default_factory=_utcnow)
    total_shortcuts_checked: int = 0
    valid_shortcuts: int = 0
    broken_shortcuts: int = 0
    broken_details: List[BrokenShortcutDetail] = []

    @computed_field(alias="allValid")
    @property
    def all_valid(self) -> bool:
        return self.broken_shortcuts == 0


class CancelScanResponse(ApiModel):
    scan_id: str
    cancelled: bool


# Microsoft Graph payloads

class GraphModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DriveRef(GraphModel):
    id: Optional[str] = None
    name: Optional[str] = None


class ItemHashes(GraphModel):
    quick_xor_hash: Optional[str] = Field(default=None, alias="quickXorHash")
    sha1_hash: Optional[str] = Field(default=None, alias="sha1Hash")
    sha256_hash: Optional[str] = Field(default=None, alias="sha256Hash")
    crc32_hash: Optional[str] = Field(default=None, alias="crc32Hash")

    def preferred(self) -> Tuple[str, str]:
        """Return (algorithm, digest) for the strongest hash supplied, or ("", "")."""
        for algorithm, digest in (
            ("quickXorHash", self.quick_xor_hash),
            ("sha1Hash", self.sha1_hash),
            ("sha256Hash", self.sha256_hash),
            ("crc32Hash", self.crc32_hash),
        ):
            if digest:
                return algorithm, digest
        return "", ""


class FileFacet(GraphModel):
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    hashes: Optional[ItemHashes] = None


class FolderFacet(GraphModel):
    child_count: Optional[int] = Field(default=None, alias="childCount")


class ParentReference(GraphModel):
    drive_id: Optional[str] = Field(default=None, alias="driveId")
    id: Optional[str] = None
    path: Optional[str] = None


class DriveItem(GraphModel):
    id: Optional[str] = None
    name: Optional[str] = None
    size: Optional[int] = None
    folder: Optional[FolderFacet] = None
    file: Optional[FileFacet] = None
    web_url: Optional[str] = Field(default=None, alias="webUrl")
    last_modified_date_time: Optional[datetime] = Field(default=None, alias="lastModifiedDateTime")
    parent_reference: Optional[ParentReference] = Field(default=None, alias="parentReference")


class ChildrenPage(GraphModel):
    """One page of a children listing; next_link is the opaque continuation token."""
    items: List[DriveItem] = []
    next_link: Optional[str] = None
