from pathlib import Path

import pytest

from yanmirestore.models import RecoverableItem
from yanmirestore.paths import (
    UnsafeDestinationError,
    absolute_path,
    build_output_path,
    build_unique_path,
    drive_letter_from_device_path,
    is_windows_reserved_name,
    requires_windows_raw_alignment,
    resolve_source_path,
    sanitize_name,
    split_file_name,
    validate_destination_path,
    windows_volume_key,
)


def _item(item_id="item-1", name="photo.jpg"):
    return RecoverableItem(
        id=item_id,
        category="signature-carved",
        confidence=0.5,
        note="",
        suggested_name=name,
    )


def test_reject_destination_inside_source(tmp_path):
    source = tmp_path / "source"
    destination = source / "restore"
    destination.mkdir(parents=True)
    with pytest.raises(UnsafeDestinationError):
        validate_destination_path(source, destination)


def test_reject_destination_that_is_parent_of_source_dir(tmp_path):
    source = tmp_path / "data" / "source"
    source.mkdir(parents=True)
    with pytest.raises(UnsafeDestinationError, match="上级目录"):
        validate_destination_path(source, tmp_path / "data")


def test_reject_destination_equal_to_source(tmp_path):
    source = tmp_path / "same"
    source.mkdir()
    with pytest.raises(UnsafeDestinationError):
        validate_destination_path(source, source)


def test_parse_drive_letter_from_device_path():
    assert drive_letter_from_device_path(r"\\.\F:") == "f"
    assert drive_letter_from_device_path(r"\\?\g:") == "g"
    assert drive_letter_from_device_path("F:\\") is None
    assert drive_letter_from_device_path(r"C:\data") is None


def test_windows_volume_key_from_device_path():
    assert windows_volume_key(r"\\.\E:") == "e:"


def test_sanitize_name_keeps_chinese_and_filters_invalid_chars():
    assert sanitize_name("微信图片_2026:02:21?.jpg") == "微信图片_2026_02_21_.jpg"
    assert sanitize_name("  报表 .xlsx ") == "报表 .xlsx"
    assert sanitize_name("CON") == "_CON"


def test_sanitize_name_edge_cases():
    assert sanitize_name("") == "item.bin"
    assert sanitize_name(" ... ") == "item.bin"
    assert sanitize_name("a\tb") == "a_b"
    assert sanitize_name("name. .") == "name"


@pytest.mark.parametrize(
    "name,expected",
    [("con", True), ("Lpt9", True), ("COM1", True), ("COM0", False), ("console", False)],
)
def test_is_windows_reserved_name(name, expected):
    assert is_windows_reserved_name(name) is expected


@pytest.mark.parametrize(
    "name,expected",
    [
        ("photo.jpg", ("photo", "jpg")),
        ("archive.tar.gz", ("archive.tar", "gz")),
        (".bashrc", (".bashrc", None)),
        ("README", ("README", None)),
        ("", ("item", None)),
    ],
)
def test_split_file_name(name, expected):
    assert split_file_name(name) == expected


def test_build_unique_path_preserves_extension(tmp_path):
    (tmp_path / "照片.jpg").write_bytes(b"a")
    second = build_unique_path(tmp_path, "照片.jpg")
    assert second.name == "照片_1.jpg"


def test_build_unique_path_counts_up_and_handles_no_extension(tmp_path):
    (tmp_path / "blob").write_bytes(b"a")
    (tmp_path / "blob_1").write_bytes(b"a")
    assert build_unique_path(tmp_path, "blob") == tmp_path / "blob_2"
    assert build_unique_path(tmp_path, "free.txt") == tmp_path / "free.txt"


def test_build_output_path_naming_policy(tmp_path):
    item = _item("case:1", "a?b.png")
    assert build_output_path(tmp_path, item, False) == tmp_path / "case_1_a_b.png"
    assert build_output_path(tmp_path, item, True) == tmp_path / "a_b.png"


def test_absolute_path_of_missing_relative_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert absolute_path(Path("missing")) == Path.cwd() / "missing"


def test_absolute_path_resolves_existing(tmp_path):
    target = tmp_path / "dir"
    target.mkdir()
    assert absolute_path(target / ".." / "dir") == target.resolve()


def test_resolve_source_path_absolute_is_kept(tmp_path):
    source = tmp_path / "image.bin"
    assert resolve_source_path(str(source), tmp_path / "report.json") == source


def test_resolve_source_path_prefers_report_dir(tmp_path):
    (tmp_path / "image.bin").write_bytes(b"x")
    resolved = resolve_source_path("image.bin", tmp_path / "report.json")
    assert resolved == tmp_path / "image.bin"


def test_resolve_source_path_falls_back_to_report_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    reports = tmp_path / "reports"
    resolved = resolve_source_path("nothing.bin", reports / "report.json")
    assert resolved == reports / "nothing.bin"


def test_regular_path_needs_no_raw_alignment(tmp_path):
    assert requires_windows_raw_alignment(tmp_path / "image.bin") is False