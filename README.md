# yanmirestore

A safety-first library for recovering deleted files. It builds scan plans,
reads and writes scan reports as JSON, and extracts candidate files from a
source image, volume or directory into a separate destination. It never
writes to the source.

User-facing text in plans, reports, progress output and manifests is in
Simplified Chinese.

## Modules

- **`yanmirestore.models`**: the data types shared by every stage:
  `ScanPlan`, `PlanInput`, `ScanRequest`, `ScanReport`, `DeviceSnapshot`,
  `FsScanResult`, `CarveResult`, `RecoverableItem`, `SourceSegment`,
  `RecoveryRequest`, `RecoveryAction` and `RecoverySession`. There are also
  per-filesystem counters (`NtfsDataSummary`, `FatDataSummary`,
  `Ext4DataSummary`, each with `merge` and `is_zero`) and the enums
  `TargetKind`, `ScanDepth`, `FsHint` and `FatVolumeKind`. `ScanPlan`,
  `ScanReport`, `RecoverableItem` and `RecoverySession` convert to and from
  plain dicts with `to_dict` / `from_dict`, so they can be stored as JSON.
  `target_kind_label` gives the display label of a target kind.
- **`yanmirestore.planning`**: `build_plan` turns a `PlanInput` into a
  `ScanPlan`. The plan lists the stages (acquisition, metadata scan, optional
  signature carving, export), the safety rules and the assumptions that apply
  to the target kind. `build_warnings` produces the risk notes for a scan
  report, such as directory-only scanning or no findings.
- **`yanmirestore.recovery`**: `execute_recovery` reads a scan report from
  JSON, checks that the destination is safe, and recovers each finding
  with `recover_item`. It shows a `tqdm` progress bar on stdout. At the end it
  writes a manifest named `恢复清单.json` into the destination.
  `sync_file_timestamps` copies access and modification times from one file
  to another.
- **`yanmirestore.extract`**: the byte-level primitives, `extract_range`,
  `extract_segments`, `copy_range`, `copy_range_direct`,
  `copy_range_aligned` and `align_up`.
- **`yanmirestore.paths`**: output naming (`sanitize_name`,
  `build_output_path`, `build_unique_path`), resolution of report sources
  (`resolve_source_path`) and the destination safety check
  (`validate_destination_path`).
- **`yanmirestore.report`**: `write_scan_report` saves a report as
  `<case-id>-scan-report.json`. `print_plan`, `print_scan_summary` and
  `print_recovery_session` print to the terminal.

## Safety rules

- Sources are only opened for reading.
- `validate_destination_path` raises `UnsafeDestinationError` (a
  `ValueError`) in any of these cases:
  - the destination lies inside the source;
  - the source is a directory inside the destination;
  - the destination is the same path as the source;
  - both paths are on the same Windows volume.
- Output names are cleaned of control characters and of characters that
  Windows forbids. Reserved device names such as `CON` get a leading
  underscore, and an empty name becomes `item.bin`. A name that is already
  taken gets a numeric suffix, and the extension is kept (`照片.jpg`
  becomes `照片_1.jpg`).

## Usage

Build and print a plan:

```python
from yanmirestore.models import PlanInput, TargetKind, ScanDepth, FsHint
from yanmirestore.planning import build_plan
from yanmirestore.report import print_plan

plan = build_plan(
    PlanInput(
        case_id="case-001",
        target_kind=TargetKind.USB_DISK,
        depth=ScanDepth.DEEP,
        fs_hint=FsHint.AUTO,
        include_carving=True,
    )
)
print_plan(plan)
```

Recover the findings of an existing scan report. Do a dry run first, then
run it for real:

```python
from pathlib import Path

from yanmirestore.models import RecoveryRequest
from yanmirestore.recovery import execute_recovery
from yanmirestore.report import print_recovery_session

request = RecoveryRequest(
    report_path=Path("reports/case-001-scan-report.json"),
    destination=Path("/mnt/other-disk/restore"),
    dry_run=True,
    keep_original_name=True,
    preserve_timestamps=True,
    skip_carved=False,
)
session = execute_recovery(request)
print_recovery_session(session)
```

In dry-run mode every finding gets the status `计划` and nothing is
extracted. The destination is still created and the manifest is still
written.

In a real run each finding is handled by the first rule that applies:

- signature-carved findings are skipped when `skip_carved` is set;
- findings with source segments are joined from those segments;
- NTFS and ext4 metadata-only findings are skipped;
- findings with a logical `source_path` are copied from that path;
- findings with an offset and size are extracted as a contiguous range;
- anything else is skipped.

Each action ends as `成功` (recovered), `失败` (failed) or `跳过` (skipped).
Unless `keep_original_name` is set, output names are prefixed with the item
id.

## Extracting byte ranges directly

- `extract_range` copies a contiguous range of a file.
- `extract_segments` joins a list of `SourceSegment` values and fills sparse
  segments with zeros.
- `copy_range` chooses sector-aligned reads (`copy_range_aligned`, 512-byte
  alignment) on Windows for raw device paths such as `\\.\F:`. Otherwise it
  uses plain sequential reads (`copy_range_direct`).

Short reads raise `EOFError`. Invalid alignment or buffer sizes raise
`ValueError`. Errors from opening or writing files propagate as `OSError`.

## What this package does not do

The package does not inspect devices, parse file systems or carve signatures
itself. It consumes `ScanReport` data, as JSON or built in code, but does not
produce the findings. There is no command-line program; everything is used
as a Python library.