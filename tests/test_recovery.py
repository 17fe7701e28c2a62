import json
import os

import pytest

from yanmirestore.models import (
    CarveResult,
    DeviceSnapshot,
    FsHint,
    FsScanResult,
    RecoverableItem,
    RecoveryRequest,
    RecoverySession,
    ScanDepth,
    ScanPlan,
    ScanReport,
    SourceSegment,
    TargetKind,
)
from yanmirestore.paths import UnsafeDestinationError
from yanmirestore.recovery import execute_recovery, recover_item, sync_file_timestamps

PAYLOAD = bytes(v % 251 for v in range(20000))


def _make_report(source, findings, case_id="case-1"):
    plan = ScanPlan(
        case_id=case_id,
        target_kind=TargetKind.AUTO,
        depth=ScanDepth.METADATA,
        fs_hint=FsHint.AUTO,
    )
    return ScanReport(
        generated_at="2024-01-01T00:00:00+00:00",
        plan=plan,
        source=str(source),
        device_snapshot=DeviceSnapshot(
            source=str(source), source_type="image-file", size_bytes=len(PAYLOAD)
        ),
        fs_result=FsScanResult(detected_fs=None, deleted_entry_candidates=0),
        carve_result=CarveResult(enabled=True),
        findings=findings,
    )


def _write_report(tmp_path, source, findings, case_id="case-1"):
    report_path = tmp_path / "report.json"
    report_path.write_text(
        json.dumps(_make_report(source, findings, case_id).to_dict(), ensure_ascii=False),
        encoding="utf-8",
    )
    return report_path


@pytest.fixture
def image(tmp_path):
    source_dir = tmp_path / "src"
    source_dir.mkdir()
    path = source_dir / "image.bin"
    path.write_bytes(PAYLOAD)
    return path


def _carved(item_id, offset, size, name="photo.jpg"):
    return RecoverableItem(
        id=item_id,
        category="signature-carved",
        confidence=0.9,
        note="carved",
        suggested_name=name,
        source_offset=offset,
        size_bytes=size,
    )


def test_carved_item_extracted(tmp_path, image):
    report_path = _write_report(tmp_path, image, [_carved("c1", 333, 4097)])
    dest = tmp_path / "out"
    session = execute_recovery(RecoveryRequest(report_path=report_path, destination=dest))

    assert session.action_count == 1
    action = session.actions[0]
    assert action.status == "成功"
    assert action.bytes_written == 4097
    assert open(action.output_path, "rb").read() == PAYLOAD[333 : 333 + 4097]
    assert os.path.basename(action.output_path) == "c1_photo.jpg"


def test_manifest_round_trips(tmp_path, image):
    report_path = _write_report(tmp_path, image, [_carved("c1", 0, 100)], case_id="abc")
    dest = tmp_path / "out"
    session = execute_recovery(RecoveryRequest(report_path=report_path, destination=dest))

    manifest = dest / "恢复清单.json"
    assert session.manifest_path == str(manifest)
    loaded = RecoverySession.from_dict(json.loads(manifest.read_text(encoding="utf-8")))
    assert loaded.to_dict() == session.to_dict()
    assert loaded.case_id == "abc"


def test_segments_with_sparse(tmp_path, image):
    item = RecoverableItem(
        id="s1",
        category="ext4-deleted-file",
        confidence=0.8,
        note="",
        suggested_name="doc.txt",
        size_bytes=300,
        source_segments=[
            SourceSegment(offset=10, length=100),
            SourceSegment(offset=0, length=100, sparse=True),
            SourceSegment(offset=500, length=100),
        ],
    )
    report_path = _write_report(tmp_path, image, [item])
    session = execute_recovery(
        RecoveryRequest(report_path=report_path, destination=tmp_path / "out")
    )
    action = session.actions[0]
    assert action.status == "成功"
    data = open(action.output_path, "rb").read()
    assert data == PAYLOAD[10:110] + bytes(100) + PAYLOAD[500:600]
    assert action.bytes_written == len(data)


def test_dry_run_writes_only_manifest(tmp_path, image):
    report_path = _write_report(tmp_path, image, [_carved("c1", 0, 64)])
    dest = tmp_path / "out"
    session = execute_recovery(
        RecoveryRequest(report_path=report_path, destination=dest, dry_run=True)
    )
    assert session.dry_run is True
    assert [a.status for a in session.actions] == ["计划"]
    assert session.actions[0].bytes_written == 64
    assert "当前为预演模式。" in session.notes
    assert sorted(p.name for p in dest.iterdir()) == ["恢复清单.json"]


def test_empty_report_notes(tmp_path, image):
    report_path = _write_report(tmp_path, image, [])
    session = execute_recovery(
        RecoveryRequest(report_path=report_path, destination=tmp_path / "out")
    )
    assert session.action_count == 0
    assert "扫描报告中没有可恢复候选项。" in session.notes
    assert "成功恢复数量：0" in session.notes


def test_failure_counted_in_notes(tmp_path, image):
    report_path = _write_report(
        tmp_path, image, [_carved("ok", 0, 10), _carved("bad", 19990, 1000)]
    )
    session = execute_recovery(
        RecoveryRequest(report_path=report_path, destination=tmp_path / "out")
    )
    statuses = [a.status for a in session.actions]
    assert statuses == ["成功", "失败"]
    assert session.actions[1].note.startswith("雕刻提取失败：")
    assert "失败数量：1" in session.notes
    assert "成功恢复数量：1" in session.notes


def test_destination_inside_source_rejected(tmp_path):
    source_dir = tmp_path / "source"
    source_dir.mkdir()
    report_path = _write_report(tmp_path, source_dir, [])
    with pytest.raises(UnsafeDestinationError):
        execute_recovery(
            RecoveryRequest(report_path=report_path, destination=source_dir / "restore")
        )


def test_skip_carved(tmp_path, image):
    request = RecoveryRequest(
        report_path=tmp_path / "r.json", destination=tmp_path, skip_carved=True
    )
    action = recover_item(image, tmp_path, _carved("c1", 0, 10), request)
    assert action.status == "跳过"
    assert action.output_path is None


def test_metadata_only_items_skipped(tmp_path, image):
    request = RecoveryRequest(report_path=tmp_path / "r.json", destination=tmp_path)
    ntfs = RecoverableItem(
        id="n1", category="ntfs-mft-deleted-file", confidence=0.5,
        note="detail", suggested_name="a.txt",
    )
    ext4 = RecoverableItem(
        id="e1", category="ext4-deleted-file", confidence=0.5,
        note="detail", suggested_name="b.txt",
    )
    bare = RecoverableItem(
        id="x1", category="other", confidence=0.5, note="", suggested_name="c.txt"
    )
    for item in (ntfs, ext4, bare):
        action = recover_item(image, tmp_path, item, request)
        assert action.status == "跳过"
    assert recover_item(image, tmp_path, ntfs, request).note.endswith("detail")
    assert recover_item(image, tmp_path, bare, request).note == "缺少恢复坐标（path/offset/size）。"


def test_logical_file_copied_with_timestamps(tmp_path, image):
    logical = tmp_path / "trash" / "note.txt"
    logical.parent.mkdir()
    logical.write_bytes(b"hello logical")
    os.utime(logical, ns=(1_000_000_000_000_000_000, 1_000_000_000_000_000_000))
    item = RecoverableItem(
        id="l1", category="recycle-bin", confidence=1.0, note="",
        suggested_name="note.txt", source_path=str(logical),
    )
    dest = tmp_path / "out"
    dest.mkdir()
    request = RecoveryRequest(
        report_path=tmp_path / "r.json", destination=dest,
        keep_original_name=True, preserve_timestamps=True,
    )
    action = recover_item(image, dest, item, request)
    assert action.status == "成功"
    assert action.output_path == str(dest / "note.txt")
    assert open(action.output_path, "rb").read() == b"hello logical"
    assert action.bytes_written == len(b"hello logical")
    assert os.stat(action.output_path).st_mtime_ns == logical.stat().st_mtime_ns


def test_missing_logical_file_fails(tmp_path, image):
    item = RecoverableItem(
        id="l1", category="recycle-bin", confidence=1.0, note="",
        suggested_name="gone.txt", source_path=str(tmp_path / "gone.txt"),
    )
    request = RecoveryRequest(report_path=tmp_path / "r.json", destination=tmp_path)
    action = recover_item(image, tmp_path, item, request)
    assert action.status == "失败"
    assert action.note.startswith("未找到源逻辑文件：")


def test_sync_file_timestamps(tmp_path):
    source = tmp_path / "a"
    target = tmp_path / "b"
    source.write_bytes(b"a")
    target.write_bytes(b"b")
    os.utime(source, ns=(1_500_000_000_000_000_000, 1_600_000_000_000_000_000))
    sync_file_timestamps(source, target)
    assert target.stat().st_mtime_ns == source.stat().st_mtime_ns


def test_sync_file_timestamps_missing_source(tmp_path):
    target = tmp_path / "b"
    target.write_bytes(b"b")
    with pytest.raises(FileNotFoundError):
        sync_file_timestamps(tmp_path / "missing", target)