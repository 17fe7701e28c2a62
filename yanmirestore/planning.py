"""Scan plan construction and scan warnings."""

from __future__ import annotations

from .models import DeviceSnapshot, PlanInput, PlanStage, ScanPlan, ScanRequest, TargetKind

_MOUNTED_PATH = "mounted-path"


def build_plan(input: PlanInput) -> ScanPlan:
    """Build the staged scan plan for the given input."""
    stages = [
        PlanStage("stage-1", "采集数据源", "以只读方式打开数据源并采集介质基础信息。"),
        PlanStage("stage-2", "元数据扫描", "解析文件系统元数据并定位已删除条目。"),
    ]
    if input.include_carving:
        stages.append(PlanStage("stage-3", "签名雕刻", "在未分配区域中扫描已知文件签名。"))
    stages.append(PlanStage("stage-4", "导出恢复", "将恢复数据导出到与源盘不同的目标介质。"))

    assumptions = [
        "程序不会向源介质写入任何数据。",
        "恢复文件会导出到其他磁盘。",
    ]
    if TargetKind(input.target_kind) is TargetKind.PHONE:
        assumptions.append("手机恢复通常需要逻辑备份导出或物理镜像。")
        assumptions.append("锁定或加密设备可能阻断删除数据恢复。")
    else:
        assumptions.append("SSD 设备上的 TRIM 可能永久擦除已删除数据块。")

    safety_rules = [
        "始终以只读方式挂载源介质。",
        "禁止将恢复数据写回源卷。",
        "保留案件清单与操作日志以便追溯。",
    ]

    return ScanPlan(
        case_id=input.case_id,
        target_kind=input.target_kind,
        depth=input.depth,
        fs_hint=input.fs_hint,
        stages=stages,
        safety_rules=safety_rules,
        assumptions=assumptions,
    )


def build_warnings(
    request: ScanRequest, snapshot: DeviceSnapshot, no_findings: bool
) -> list[str]:
    """Collect the global warnings of a scan."""
    warnings: list[str] = []
    effective_kind = (
        snapshot.detected_target_kind
        if snapshot.detected_target_kind is not None
        else request.target_kind
    )
    is_phone = TargetKind(effective_kind) is TargetKind.PHONE
    directory_mode = (
        snapshot.source_type == _MOUNTED_PATH and snapshot.low_level_source_path is None
    )

    if directory_mode and is_phone:
        warnings.append("当前为手机目录模式，通常只能覆盖逻辑文件，难以命中底层删除数据块。")
    if directory_mode and not is_phone:
        warnings.append(
            "当前为目录扫描模式，覆盖范围有限；建议使用原始磁盘镜像以提升恢复覆盖率。"
        )
    if no_findings:
        warnings.append("本次未发现可恢复候选项。建议使用原始镜像并启用签名雕刻后重试。")
    return warnings