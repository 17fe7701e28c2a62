"""Recovery execution: export candidates from a scan report and write a manifest."""

from __future__ import annotations

import json
import os
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from tqdm import tqdm

from .extract import extract_range, extract_segments
from .models import (
    RecoverableItem,
    RecoveryAction,
    RecoveryRequest,
    RecoverySession,
    ScanReport,
)
from .paths import build_output_path, resolve_source_path, validate_destination_path

PathLike = Union[str, "os.PathLike[str]"]

STATUS_SUCCESS = "成功"
STATUS_FAILED = "失败"
STATUS_SKIPPED = "跳过"
STATUS_PLANNED = "计划"

MANIFEST_NAME = "恢复清单.json"
PROGRESS_PREFIX = "恢复"
CARVED_CATEGORY = "signature-carved"

_EXTRACT_ERRORS = (OSError, EOFError, ValueError)


def sync_file_timestamps(source: PathLike, target: PathLike) -> None:
    """Copy the access and modification times of source onto target."""
    stat = os.stat(source)
    os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))


def _skipped(item: RecoverableItem, note: str) -> RecoveryAction:
    return RecoveryAction(item_id=item.id, status=STATUS_SKIPPED, note=note)


def _recover_segment_list(
    source_path: Path, destination: Path, item: RecoverableItem, request: RecoveryRequest
) -> RecoveryAction:
    target_path = build_output_path(destination, item, request.keep_original_name)
    try:
        written = extract_segments(
            source_path, target_path, item.source_segments, item.size_bytes
        )
    except _EXTRACT_ERRORS as error:
        return RecoveryAction(
            item_id=item.id,
            status=STATUS_FAILED,
            note=f"分段提取失败：{error}",
            output_path=str(target_path),
        )
    note = "已按分段源区间完成恢复。"
    if request.preserve_timestamps:
        note += "该条目来自底层数据段，缺少可用原始时间戳。"
    return RecoveryAction(
        item_id=item.id,
        status=STATUS_SUCCESS,
        note=note,
        output_path=str(target_path),
        bytes_written=written,
    )


def _recover_logical_file(
    source_file: str, destination: Path, item: RecoverableItem, request: RecoveryRequest
) -> RecoveryAction:
    source = Path(source_file)
    if not source.exists():
        return RecoveryAction(
            item_id=item.id,
            status=STATUS_FAILED,
            note=f"未找到源逻辑文件：{source}",
        )

    target_path = build_output_path(destination, item, request.keep_original_name)
    try:
        shutil.copyfile(source, target_path)
        shutil.copymode(source, target_path)
        written = target_path.stat().st_size
    except OSError as error:
        return RecoveryAction(
            item_id=item.id,
            status=STATUS_FAILED,
            note=f"复制失败：{error}",
            output_path=str(target_path),
        )

    if request.preserve_timestamps:
        try:
            sync_file_timestamps(source, target_path)
            note = "已从回收站/垃圾桶路径复制逻辑删除文件，并同步原始时间戳。"
        except OSError as error:
            note = f"已从回收站/垃圾桶路径复制逻辑删除文件，但同步时间戳失败：{error}"
    else:
        note = "已从回收站/垃圾桶路径复制逻辑删除文件。"
    return RecoveryAction(
        item_id=item.id,
        status=STATUS_SUCCESS,
        note=note,
        output_path=str(target_path),
        bytes_written=written,
    )


def _recover_carved_segment(
    image_path: Path,
    destination: Path,
    item: RecoverableItem,
    offset: int,
    size: int,
    request: RecoveryRequest,
) -> RecoveryAction:
    target_path = build_output_path(destination, item, request.keep_original_name)
    try:
        written = extract_range(image_path, target_path, offset, size)
    except _EXTRACT_ERRORS as error:
        return RecoveryAction(
            item_id=item.id,
            status=STATUS_FAILED,
            note=f"雕刻提取失败：{error}",
            output_path=str(target_path),
        )
    note = f"已从偏移 {offset} 提取雕刻数据。"
    if request.preserve_timestamps:
        note += "该条目来自底层数据段，缺少可用原始时间戳。"
    return RecoveryAction(
        item_id=item.id,
        status=STATUS_SUCCESS,
        note=note,
        output_path=str(target_path),
        bytes_written=written,
    )


def recover_item(
    source_path: PathLike,
    destination: PathLike,
    item: RecoverableItem,
    request: RecoveryRequest,
) -> RecoveryAction:
    """Recover one candidate using the strategy its coordinates call for."""
    source_path = Path(source_path)
    destination = Path(destination)

    if request.skip_carved and item.category == CARVED_CATEGORY:
        return _skipped(item, "按参数要求跳过签名雕刻候选项。")

    if item.source_segments:
        return _recover_segment_list(source_path, destination, item, request)

    if item.category.startswith("ntfs-mft-deleted-"):
        return _skipped(
            item,
            f"该 NTFS 条目仅有元数据，当前版本无法恢复数据段。扫描详情：{item.note}",
        )

    if item.category.startswith("ext4-deleted-"):
        return _skipped(item, f"该 ext4 条目缺少可恢复数据段。扫描详情：{item.note}")

    if item.source_path is not None:
        return _recover_logical_file(item.source_path, destination, item, request)

    if item.source_offset is not None and item.size_bytes is not None:
        return _recover_carved_segment(
            source_path, destination, item, item.source_offset, item.size_bytes, request
        )

    return _skipped(item, "缺少恢复坐标（path/offset/size）。")


def _session_notes(
    request: RecoveryRequest, actions: list[RecoveryAction], no_findings: bool
) -> list[str]:
    recovered = sum(1 for action in actions if action.status == STATUS_SUCCESS)
    failed = sum(1 for action in actions if action.status == STATUS_FAILED)

    notes = ["本命令不会修改源介质。", f"成功恢复数量：{recovered}"]
    if failed > 0:
        notes.append(f"失败数量：{failed}")
    if request.dry_run:
        notes.append("当前为预演模式。")
    notes.append(
        "输出文件名策略：优先使用原文件名，冲突时自动追加序号。"
        if request.keep_original_name
        else "输出文件名策略：使用案件条目前缀命名。"
    )
    notes.append(
        "时间戳策略：可获取时同步原文件访问/修改时间。"
        if request.preserve_timestamps
        else "时间戳策略：不额外同步，使用恢复写入时间。"
    )
    notes.append(
        "候选过滤策略：已跳过签名雕刻候选项，仅恢复文件系统候选项。"
        if request.skip_carved
        else "候选过滤策略：恢复全部候选项（含签名雕刻）。"
    )
    if no_findings:
        notes.append("扫描报告中没有可恢复候选项。")
    return notes


def execute_recovery(request: RecoveryRequest) -> RecoverySession:
    """Read a scan report, recover its findings and write the recovery manifest."""
    report_path = Path(request.report_path)
    destination = Path(request.destination)

    report = ScanReport.from_dict(json.loads(report_path.read_text(encoding="utf-8")))
    source_path = resolve_source_path(report.source, report_path)
    validate_destination_path(source_path, destination)

    destination.mkdir(parents=True, exist_ok=True)

    findings = report.findings
    total = len(findings)
    actions: list[RecoveryAction] = []
    with tqdm(total=total, desc=PROGRESS_PREFIX, file=sys.stdout, unit="项") as bar:
        bar.set_postfix_str("当前无可恢复条目" if total == 0 else "准备恢复任务")
        for index, item in enumerate(findings, start=1):
            bar.set_postfix_str(f"正在处理 {index}/{total}：{item.suggested_name}")
            if request.dry_run:
                action = RecoveryAction(
                    item_id=item.id,
                    status=STATUS_PLANNED,
                    note="预演模式：不执行实际提取。",
                    bytes_written=item.size_bytes,
                )
            else:
                action = recover_item(source_path, destination, item, request)
            actions.append(action)
            bar.update(1)
        bar.set_postfix_str(
            "恢复预演完成，未写入目标文件" if request.dry_run else "恢复执行完成，文件已导出"
        )

    manifest_path = destination / MANIFEST_NAME
    session = RecoverySession(
        generated_at=datetime.now(timezone.utc).isoformat(),
        case_id=report.plan.case_id,
        destination=str(destination),
        dry_run=request.dry_run,
        action_count=len(actions),
        actions=actions,
        notes=_session_notes(request, actions, not findings),
        manifest_path=str(manifest_path),
    )
    manifest_path.write_text(
        json.dumps(session.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
    )
    return session