"""Byte-range extraction from source media into recovered files."""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

from .models import SourceSegment
from .paths import requires_windows_raw_alignment

PathLike = Union[str, "os.PathLike[str]"]

COPY_BUFFER_SIZE = 1024 * 1024
RAW_IO_ALIGNMENT = 512

_U64_MAX = 2**64 - 1


def align_up(value: int, alignment: int) -> int:
    """Round value up to the next multiple of alignment."""
    if alignment == 0:
        raise ValueError("对齐值不能为 0")
    remainder = value % alignment
    return value if remainder == 0 else value + (alignment - remainder)


def _read_exact(stream: BinaryIO, length: int) -> bytes:
    parts = []
    received = 0
    while received < length:
        block = stream.read(length - received)
        if not block:
            break
        parts.append(block)
        received += len(block)
    return b"".join(parts)


def copy_range_direct(
    input: BinaryIO,
    output: BinaryIO,
    offset: int,
    size: int,
    buffer_size: int = COPY_BUFFER_SIZE,
) -> int:
    """Copy size bytes starting at offset with plain sequential reads."""
    if buffer_size <= 0:
        raise ValueError("缓冲区长度必须为正数")
    input.seek(offset)
    remaining = size
    written = 0
    while remaining > 0:
        block = input.read(min(remaining, buffer_size))
        if not block:
            raise EOFError(
                f"请求从偏移 {offset} 读取 {size} 字节，但实际仅可读取 {written} 字节"
            )
        output.write(block)
        remaining -= len(block)
        written += len(block)
    return written


def copy_range_aligned(
    input: BinaryIO,
    output: BinaryIO,
    offset: int,
    size: int,
    alignment: int,
    buffer_size: int = COPY_BUFFER_SIZE,
) -> int:
    """Copy size bytes starting at offset using reads aligned to alignment."""
    if alignment == 0:
        raise ValueError("原始卷对齐读取的对齐值不能为 0")
    if alignment & (alignment - 1):
        raise ValueError("原始卷对齐值必须是 2 的幂")
    if buffer_size <= 0:
        raise ValueError("缓冲区长度必须为正数")

    current_offset = offset
    remaining = size
    written = 0
    while remaining > 0:
        chunk = min(remaining, buffer_size)
        aligned_start = (current_offset // alignment) * alignment
        skip = current_offset - aligned_start
        aligned_len = align_up(skip + chunk, alignment)

        input.seek(aligned_start)
        data = _read_exact(input, aligned_len)
        if len(data) < aligned_len:
            raise EOFError(
                f"原始卷对齐读取在偏移 {aligned_start} 提前结束（请求读取 {aligned_len} 字节）"
            )
        output.write(data[skip : skip + chunk])

        current_offset += chunk
        remaining -= chunk
        written += chunk
    return written


def copy_range(
    input: BinaryIO,
    source_path: PathLike,
    output: BinaryIO,
    offset: int,
    size: int,
) -> int:
    """Copy a byte range, choosing aligned reads for raw Windows volumes."""
    if size == 0:
        return 0
    if requires_windows_raw_alignment(source_path):
        return copy_range_aligned(input, output, offset, size, RAW_IO_ALIGNMENT)
    return copy_range_direct(input, output, offset, size)


def extract_range(
    source_path: PathLike, target_path: PathLike, offset: int, size: int
) -> int:
    """Write size bytes of source_path starting at offset into target_path."""
    with open(source_path, "rb") as input, open(target_path, "wb") as output:
        return copy_range(input, source_path, output, offset, size)


def extract_segments(
    source_path: PathLike,
    target_path: PathLike,
    segments: Iterable[SourceSegment],
    requested_size: Optional[int],
) -> int:
    """Concatenate the given segments of source_path into target_path."""
    segments = list(segments)
    total_capacity = sum(segment.length for segment in segments)
    if total_capacity > _U64_MAX:
        raise ValueError("分段长度发生溢出")
    remaining = total_capacity if requested_size is None else requested_size
    needs_input = any(not segment.sparse for segment in segments)

    written = 0
    with open(target_path, "wb") as output:
        opener = open(source_path, "rb") if needs_input else contextlib.nullcontext()
        with opener as input:
            zeros = bytes(COPY_BUFFER_SIZE)
            for segment in segments:
                if remaining == 0:
                    break
                segment_size = min(segment.length, remaining)
                if segment.sparse:
                    left = segment_size
                    while left > 0:
                        chunk = min(left, len(zeros))
                        output.write(zeros[:chunk])
                        left -= chunk
                    remaining -= segment_size
                    written += segment_size
                    continue
                copied = copy_range(input, source_path, output, segment.offset, segment_size)
                remaining -= copied
                written += copied

    if requested_size is not None and written < requested_size:
        raise EOFError(f"请求从分段恢复 {requested_size} 字节，但仅写入 {written} 字节")
    return written