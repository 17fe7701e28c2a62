"""Writing scan reports to disk and printing plans, scans and recoveries."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Union

from .models import (
    FsHint,
    FsMetrics,
    RecoverySession,
    ScanDepth,
    ScanPlan,
    ScanReport,
    target_kind_label,
)
from .recovery import STATUS_FAILED, STATUS_SUCCESS

PathLike = Union[str, "os.PathLike[str]"]

_SCAN_DEPTH_LABELS = {
    ScanDepth.METADATA: "元数据扫描",
    ScanDepth.DEEP: "深度扫描",
}

_FS_HINT_LABELS = {
    FsHint.AUTO: "自动识别",
    FsHint.NTFS: "NTFS",
    FsHint.FAT32: "FAT32",
    FsHint.EXFAT: "exFAT",
    FsHint.EXT4: "ext4",
    FsHint.APFS: "APFS",
    FsHint.F2FS: "F2FS",
}

_MIXED_PART_LABELS = {
    "ntfs": "NTFS",
    "fat": "FAT",
    "family": "exFAT",
    "ext4": "ext4",
    "apfs": "APFS",
    "f2fs": "F2FS",
}

_DETECTED_FS_LABELS = {
    "ntfs": "NTFS",
    "fat32": "FAT32",
    "exfat": "exFAT",
    "fat-family": "FAT/exFAT",
    "ext4": "ext4",
    "apfs": "APFS",
    "f2fs": "F2FS",
}


def sanitize_case_id(value: str) -> str:
    """Make a case id safe for use in a file name."""
    sanitized = "".join(
        ch if (ch.isascii() and ch.isalnum()) or ch in "-_" else "_" for ch in value
    )
    return sanitized or "case"


def write_scan_report(report: ScanReport, output_dir: PathLike) -> Path:
    """Write the report as pretty JSON into output_dir and return the file path."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    output_path = directory / f"{sanitize_case_id(report.plan.case_id)}-scan-report.json"
    output_path.write_text(
        json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
    )
    return output_path


def scan_depth_label(depth: ScanDepth) -> str:
    """Return the human-readable label of a scan depth."""
    return _SCAN_DEPTH_LABELS[ScanDepth(depth)]


def fs_hint_label(hint: FsHint) -> str:
    """Return the human-readable label of a file system hint."""
    return _FS_HINT_LABELS[FsHint(hint)]


def detected_fs_label(value: str) -> str:
    """Return the human-readable label of a detected file system name."""
    if value.startswith("mixed-"):
        rest = value[len("mixed-"):]
        names = [
            _MIXED_PART_LABELS[part] for part in rest.split("-") if part in _MIXED_PART_LABELS
        ]
        if not names:
            return "混合（未知）"
        return f"混合（{' + '.join(names)}）"
    label = _DETECTED_FS_LABELS.get(value)
    return label if label is not None else f"未知（{value}）"


def print_plan(plan: ScanPlan) -> None:
    """Print a scan plan."""
    print("=== 恢复方案 ===")
    print(f"案件编号：{plan.case_id}")
    print(f"目标类型：{target_kind_label(plan.target_kind)}")
    print(f"扫描深度：{scan_depth_label(plan.depth)}")
    print(f"文件系统提示：{fs_hint_label(plan.fs_hint)}")
    print()
    print("执行阶段：")
    for index, stage in enumerate(plan.stages, start=1):
        print(f"{index}. {stage.title}: {stage.detail}")
    print()
    print("安全规则：")
    for rule in plan.safety_rules:
        print(f"- {rule}")
    print()
    print("前置假设：")
    for assumption in plan.assumptions:
        print(f"- {assumption}")


def print_recovery_session(session: RecoverySession) -> None:
    """Print the summary of a recovery session."""
    recovered = sum(1 for action in session.actions if action.status == STATUS_SUCCESS)
    failed = sum(1 for action in session.actions if action.status == STATUS_FAILED)

    print("=== 恢复结果 ===")
    print(f"案件编号：{session.case_id}")
    print(f"运行模式：{'预演' if session.dry_run else '执行'}")
    print(f"输出目录：{session.destination}")
    print(f"候选总数：{session.action_count}")
    print(f"成功数量：{recovered}")
    print(f"失败数量：{failed}")
    print(f"清单路径：{session.manifest_path}")
    if session.notes:
        print("补充说明：")
        for note in session.notes:
            print(f"- {note}")


def _print_fs_metrics(metrics: FsMetrics) -> None:
    ntfs = metrics.ntfs
    if ntfs is not None:
        print(
            f"NTFS 统计：可恢复={ntfs.recoverable} | 仅元数据={ntfs.metadata_only}"
            f" | 压缩={ntfs.unsupported_compressed} | 加密={ntfs.unsupported_encrypted}"
            f" | 压缩且加密={ntfs.unsupported_compressed_encrypted}"
            f" | 运行列表失败={ntfs.runlist_failed}"
            f" | 含稀疏段可恢复={ntfs.recoverable_with_sparse}"
        )

    fat = metrics.fat
    if fat is not None:
        print(
            f"FAT 统计：卷数={fat.volumes_scanned} | FAT12={fat.fat12_volumes}"
            f" | FAT16={fat.fat16_volumes} | FAT32={fat.fat32_volumes}"
            f" | exFAT={fat.exfat_volumes} | 删除文件={fat.deleted_files}"
            f" | 删除目录={fat.deleted_directories}"
            f" | 可分段恢复={fat.with_recovery_segments} | 仅元数据={fat.metadata_only}"
        )

    ext4 = metrics.ext4
    if ext4 is not None:
        print(
            f"ext4 统计：卷数={ext4.volumes_scanned} | 删除文件={ext4.deleted_files}"
            f" | 删除目录={ext4.deleted_directories}"
            f" | 可分段恢复={ext4.with_recovery_segments}"
            f" | 稀疏段={ext4.with_sparse_segments} | 仅元数据={ext4.metadata_only}"
            f" | 深度不支持={ext4.extents_depth_unsupported}"
            f" | 旧指针文件={ext4.legacy_pointer_files}"
        )


def print_scan_summary(report: ScanReport) -> None:
    """Print the summary of a scan report."""
    print("=== 扫描结果 ===")
    print(f"案件编号：{report.plan.case_id}")
    print(f"数据来源：{report.source}")
    print(
        f"候选项总数：{len(report.findings)}"
        f"（文件系统：{len(report.fs_result.items)}，"
        f"签名雕刻：{len(report.carve_result.items)}）"
    )
    detected = report.fs_result.detected_fs
    print(f"识别到的文件系统：{'未知' if detected is None else detected_fs_label(detected)}")

    snapshot = report.device_snapshot
    if snapshot.detected_target_kind is not None:
        print(f"识别到的设备类型：{target_kind_label(snapshot.detected_target_kind)}")
    if snapshot.device_hint is not None:
        print(f"设备识别依据：{snapshot.device_hint}")
    if snapshot.low_level_source_path is not None:
        print(f"底层扫描路径：{snapshot.low_level_source_path}")
    if snapshot.notes:
        print("设备说明：")
        for note in snapshot.notes:
            print(f"- {note}")

    if report.fs_result.metrics is not None:
        _print_fs_metrics(report.fs_result.metrics)

    if report.warnings:
        print("风险提示：")
        for warning in report.warnings:
            print(f"- {warning}")