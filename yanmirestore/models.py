"""Data models shared by scanning, reporting and recovery."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional

_U64_MAX = 2**64 - 1


def _saturating_add(left: int, right: int) -> int:
    return min(left + right, _U64_MAX)


class TargetKind(str, Enum):
    """Kind of medium being recovered."""

    AUTO = "auto"
    PC_DISK = "pc-disk"
    USB_DISK = "usb-disk"
    PHONE = "phone"
    OTHER = "other"


class ScanDepth(str, Enum):
    """How deep a scan goes."""

    METADATA = "metadata"
    DEEP = "deep"


class FsHint(str, Enum):
    """File system hint supplied by the user."""

    AUTO = "auto"
    NTFS = "ntfs"
    FAT32 = "fat32"
    EXFAT = "exfat"
    EXT4 = "ext4"
    APFS = "apfs"
    F2FS = "f2fs"


class FatVolumeKind(str, Enum):
    """Members of the FAT family of volumes."""

    FAT12 = "Fat12"
    FAT16 = "Fat16"
    FAT32 = "Fat32"
    EXFAT = "ExFat"


_TARGET_KIND_LABELS = {
    TargetKind.AUTO: "自动判断",
    TargetKind.PC_DISK: "电脑硬盘",
    TargetKind.USB_DISK: "移动硬盘",
    TargetKind.PHONE: "手机",
    TargetKind.OTHER: "其他设备",
}


def target_kind_label(kind: TargetKind) -> str:
    """Return the human-readable label of a target kind."""
    return _TARGET_KIND_LABELS[TargetKind(kind)]


@dataclass
class DeviceCandidate:
    """A selectable device listed by the ``devices`` command."""

    path: Path
    target_kind: TargetKind
    note: str


@dataclass
class PartitionCandidate:
    """A partition found on a source."""

    offset: int
    size: int
    label: str
    scheme: str


@dataclass
class PlanStage:
    """One stage of a scan plan."""

    id: str
    title: str
    detail: str


def _stage_to_dict(stage: PlanStage) -> dict[str, Any]:
    return {"id": stage.id, "title": stage.title, "detail": stage.detail}


def _stage_from_dict(data: dict[str, Any]) -> PlanStage:
    return PlanStage(id=data["id"], title=data["title"], detail=data["detail"])


@dataclass
class ScanPlan:
    """Execution plan of a scan."""

    case_id: str
    target_kind: TargetKind
    depth: ScanDepth
    fs_hint: FsHint
    stages: list[PlanStage] = field(default_factory=list)
    safety_rules: list[str] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "target_kind": TargetKind(self.target_kind).value,
            "depth": ScanDepth(self.depth).value,
            "fs_hint": FsHint(self.fs_hint).value,
            "stages": [_stage_to_dict(stage) for stage in self.stages],
            "safety_rules": list(self.safety_rules),
            "assumptions": list(self.assumptions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanPlan":
        return cls(
            case_id=data["case_id"],
            target_kind=TargetKind(data["target_kind"]),
            depth=ScanDepth(data["depth"]),
            fs_hint=FsHint(data["fs_hint"]),
            stages=[_stage_from_dict(stage) for stage in data["stages"]],
            safety_rules=list(data["safety_rules"]),
            assumptions=list(data["assumptions"]),
        )


@dataclass
class PlanInput:
    """Input for building a scan plan."""

    case_id: str
    target_kind: TargetKind = TargetKind.AUTO
    depth: ScanDepth = ScanDepth.METADATA
    fs_hint: FsHint = FsHint.AUTO
    include_carving: bool = False


@dataclass
class ScanRequest:
    """Parameters of a scan run."""

    plan: PlanInput
    source: Path
    output_dir: Path
    target_kind: TargetKind = TargetKind.AUTO
    depth: ScanDepth = ScanDepth.METADATA
    fs_hint: FsHint = FsHint.AUTO
    include_carving: bool = False


@dataclass
class RecoveryRequest:
    """Parameters of a recovery run."""

    report_path: Path
    destination: Path
    dry_run: bool = False
    keep_original_name: bool = False
    preserve_timestamps: bool = False
    skip_carved: bool = False


@dataclass
class RecoveryAction:
    """Outcome of recovering a single candidate."""

    item_id: str
    status: str
    note: str
    output_path: Optional[str] = None
    bytes_written: Optional[int] = None


def _action_to_dict(action: RecoveryAction) -> dict[str, Any]:
    return {
        "item_id": action.item_id,
        "status": action.status,
        "note": action.note,
        "output_path": action.output_path,
        "bytes_written": action.bytes_written,
    }


def _action_from_dict(data: dict[str, Any]) -> RecoveryAction:
    return RecoveryAction(
        item_id=data["item_id"],
        status=data["status"],
        note=data["note"],
        output_path=data.get("output_path"),
        bytes_written=data.get("bytes_written"),
    )


@dataclass
class RecoverySession:
    """Full manifest of one recovery run."""

    generated_at: str
    case_id: str
    destination: str
    dry_run: bool
    action_count: int
    actions: list[RecoveryAction]
    notes: list[str]
    manifest_path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "case_id": self.case_id,
            "destination": self.destination,
            "dry_run": self.dry_run,
            "action_count": self.action_count,
            "actions": [_action_to_dict(action) for action in self.actions],
            "notes": list(self.notes),
            "manifest_path": self.manifest_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecoverySession":
        return cls(
            generated_at=data["generated_at"],
            case_id=data["case_id"],
            destination=data["destination"],
            dry_run=bool(data["dry_run"]),
            action_count=int(data["action_count"]),
            actions=[_action_from_dict(action) for action in data["actions"]],
            notes=list(data["notes"]),
            manifest_path=data["manifest_path"],
        )


@dataclass
class SourceSegment:
    """A readable range of the source medium."""

    offset: int
    length: int
    sparse: bool = False


def _segment_to_dict(segment: SourceSegment) -> dict[str, Any]:
    return {"offset": segment.offset, "length": segment.length, "sparse": segment.sparse}


def _segment_from_dict(data: dict[str, Any]) -> SourceSegment:
    return SourceSegment(
        offset=int(data["offset"]),
        length=int(data["length"]),
        sparse=bool(data.get("sparse", False)),
    )


@dataclass
class RecoverableItem:
    """A candidate that may be recovered."""

    id: str
    category: str
    confidence: float
    note: str
    suggested_name: str
    source_path: Optional[str] = None
    source_offset: Optional[int] = None
    size_bytes: Optional[int] = None
    source_segments: list[SourceSegment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "confidence": self.confidence,
            "note": self.note,
            "suggested_name": self.suggested_name,
            "source_path": self.source_path,
            "source_offset": self.source_offset,
            "size_bytes": self.size_bytes,
            "source_segments": [_segment_to_dict(s) for s in self.source_segments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecoverableItem":
        return cls(
            id=data["id"],
            category=data["category"],
            confidence=float(data["confidence"]),
            note=data["note"],
            suggested_name=data["suggested_name"],
            source_path=data.get("source_path"),
            source_offset=data.get("source_offset"),
            size_bytes=data.get("size_bytes"),
            source_segments=[_segment_from_dict(s) for s in data.get("source_segments", [])],
        )


class _Summary:
    """Shared behaviour of the counter summaries."""

    def merge(self, other: "_Summary") -> None:
        """Add another summary's counters into this one, saturating at u64 max."""
        for item in fields(self):  # type: ignore[arg-type]
            setattr(
                self,
                item.name,
                _saturating_add(getattr(self, item.name), getattr(other, item.name)),
            )

    def is_zero(self) -> bool:
        """Return True when every counter is zero."""
        return all(getattr(self, item.name) == 0 for item in fields(self))  # type: ignore[arg-type]

    def _to_dict(self) -> dict[str, int]:
        return {item.name: getattr(self, item.name) for item in fields(self)}  # type: ignore[arg-type]

    @classmethod
    def _from_dict(cls, data: dict[str, Any]):
        return cls(**{item.name: int(data[item.name]) for item in fields(cls)})  # type: ignore[arg-type]


@dataclass
class NtfsDataSummary(_Summary):
    """NTFS scan counters."""

    recoverable: int = 0
    metadata_only: int = 0
    unsupported_compressed: int = 0
    unsupported_encrypted: int = 0
    unsupported_compressed_encrypted: int = 0
    runlist_failed: int = 0
    recoverable_with_sparse: int = 0

    def merge(self, other: "NtfsDataSummary") -> None:
        super().merge(other)

    def is_zero(self) -> bool:
        return super().is_zero()


@dataclass
class FatDataSummary(_Summary):
    """FAT/exFAT scan counters."""

    volumes_scanned: int = 0
    fat12_volumes: int = 0
    fat16_volumes: int = 0
    fat32_volumes: int = 0
    exfat_volumes: int = 0
    deleted_files: int = 0
    deleted_directories: int = 0
    with_recovery_segments: int = 0
    metadata_only: int = 0

    def merge(self, other: "FatDataSummary") -> None:
        super().merge(other)

    def is_zero(self) -> bool:
        return super().is_zero()


@dataclass
class Ext4DataSummary(_Summary):
    """ext4 scan counters."""

    volumes_scanned: int = 0
    deleted_files: int = 0
    deleted_directories: int = 0
    with_recovery_segments: int = 0
    with_sparse_segments: int = 0
    metadata_only: int = 0
    extents_depth_unsupported: int = 0
    legacy_pointer_files: int = 0

    def merge(self, other: "Ext4DataSummary") -> None:
        super().merge(other)

    def is_zero(self) -> bool:
        return super().is_zero()


@dataclass
class FsMetrics:
    """Per-file-system aggregate counters."""

    ntfs: Optional[NtfsDataSummary] = None
    fat: Optional[FatDataSummary] = None
    ext4: Optional[Ext4DataSummary] = None


def _metrics_to_dict(metrics: FsMetrics) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if metrics.ntfs is not None:
        out["ntfs"] = metrics.ntfs._to_dict()
    if metrics.fat is not None:
        out["fat"] = metrics.fat._to_dict()
    if metrics.ext4 is not None:
        out["ext4"] = metrics.ext4._to_dict()
    return out


def _metrics_from_dict(data: dict[str, Any]) -> FsMetrics:
    def pick(key, cls):
        value = data.get(key)
        return None if value is None else cls._from_dict(value)

    return FsMetrics(
        ntfs=pick("ntfs", NtfsDataSummary),
        fat=pick("fat", FatDataSummary),
        ext4=pick("ext4", Ext4DataSummary),
    )


@dataclass
class NtfsScanOutput:
    """Items and counters produced by an NTFS scan."""

    items: list[RecoverableItem] = field(default_factory=list)
    summary: NtfsDataSummary = field(default_factory=NtfsDataSummary)


@dataclass
class Ext4ScanOutput:
    """Items and counters produced by an ext4 scan."""

    items: list[RecoverableItem] = field(default_factory=list)
    summary: Ext4DataSummary = field(default_factory=Ext4DataSummary)


@dataclass
class DeviceSnapshot:
    """Device information captured during a scan."""

    source: str
    source_type: str
    size_bytes: int
    detected_target_kind: Optional[TargetKind] = None
    device_hint: Optional[str] = None
    low_level_source_path: Optional[str] = None
    notes: list[str] = field(default_factory=list)


def _snapshot_to_dict(snapshot: DeviceSnapshot) -> dict[str, Any]:
    out: dict[str, Any] = {
        "source": snapshot.source,
        "source_type": snapshot.source_type,
        "size_bytes": snapshot.size_bytes,
    }
    if snapshot.detected_target_kind is not None:
        out["detected_target_kind"] = TargetKind(snapshot.detected_target_kind).value
    if snapshot.device_hint is not None:
        out["device_hint"] = snapshot.device_hint
    if snapshot.low_level_source_path is not None:
        out["low_level_source_path"] = snapshot.low_level_source_path
    out["notes"] = list(snapshot.notes)
    return out


def _snapshot_from_dict(data: dict[str, Any]) -> DeviceSnapshot:
    kind = data.get("detected_target_kind")
    return DeviceSnapshot(
        source=data["source"],
        source_type=data["source_type"],
        size_bytes=int(data["size_bytes"]),
        detected_target_kind=None if kind is None else TargetKind(kind),
        device_hint=data.get("device_hint"),
        low_level_source_path=data.get("low_level_source_path"),
        notes=list(data["notes"]),
    )


@dataclass
class FsScanResult:
    """Result of the file system scan stage."""

    detected_fs: Optional[str]
    deleted_entry_candidates: int
    notes: list[str] = field(default_factory=list)
    items: list[RecoverableItem] = field(default_factory=list)
    metrics: Optional[FsMetrics] = None


def _fs_result_to_dict(result: FsScanResult) -> dict[str, Any]:
    out: dict[str, Any] = {
        "detected_fs": result.detected_fs,
        "deleted_entry_candidates": result.deleted_entry_candidates,
        "notes": list(result.notes),
        "items": [item.to_dict() for item in result.items],
    }
    if result.metrics is not None:
        out["metrics"] = _metrics_to_dict(result.metrics)
    return out


def _fs_result_from_dict(data: dict[str, Any]) -> FsScanResult:
    metrics = data.get("metrics")
    return FsScanResult(
        detected_fs=data.get("detected_fs"),
        deleted_entry_candidates=int(data["deleted_entry_candidates"]),
        notes=list(data["notes"]),
        items=[RecoverableItem.from_dict(item) for item in data["items"]],
        metrics=None if metrics is None else _metrics_from_dict(metrics),
    )


@dataclass
class CarveResult:
    """Result of the signature carving stage."""

    enabled: bool
    signatures: list[str] = field(default_factory=list)
    carved_candidates: int = 0
    notes: list[str] = field(default_factory=list)
    items: list[RecoverableItem] = field(default_factory=list)


def _carve_to_dict(result: CarveResult) -> dict[str, Any]:
    return {
        "enabled": result.enabled,
        "signatures": list(result.signatures),
        "carved_candidates": result.carved_candidates,
        "notes": list(result.notes),
        "items": [item.to_dict() for item in result.items],
    }


def _carve_from_dict(data: dict[str, Any]) -> CarveResult:
    return CarveResult(
        enabled=bool(data["enabled"]),
        signatures=list(data["signatures"]),
        carved_candidates=int(data["carved_candidates"]),
        notes=list(data["notes"]),
        items=[RecoverableItem.from_dict(item) for item in data["items"]],
    )


@dataclass
class ScanReport:
    """Complete report of one scan."""

    generated_at: str
    plan: ScanPlan
    source: str
    device_snapshot: DeviceSnapshot
    fs_result: FsScanResult
    carve_result: CarveResult
    findings: list[RecoverableItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "plan": self.plan.to_dict(),
            "source": self.source,
            "device_snapshot": _snapshot_to_dict(self.device_snapshot),
            "fs_result": _fs_result_to_dict(self.fs_result),
            "carve_result": _carve_to_dict(self.carve_result),
            "findings": [item.to_dict() for item in self.findings],
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanReport":
        return cls(
            generated_at=data["generated_at"],
            plan=ScanPlan.from_dict(data["plan"]),
            source=data["source"],
            device_snapshot=_snapshot_from_dict(data["device_snapshot"]),
            fs_result=_fs_result_from_dict(data["fs_result"]),
            carve_result=_carve_from_dict(data["carve_result"]),
            findings=[RecoverableItem.from_dict(item) for item in data["findings"]],
            warnings=list(data["warnings"]),
        )