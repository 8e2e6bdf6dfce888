"""
Export functionality for PhotoClean.

Provides functions to export duplicate groups to TXT, CSV and JSON files.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TextIO

from ..models import DuplicateGroup

EXPORT_FORMATS = ('txt', 'csv', 'json')


def _export_txt(groups: list[DuplicateGroup], file_handle: TextIO) -> None:
    """Export groups as a plain-text report, exact section first."""
    file_handle.write("DUPLICATE IMAGE REPORT\n")
    file_handle.write("=" * 70 + "\n\n")

    sections = (
        ("EXACT DUPLICATES", [g for g in groups if g.is_exact]),
        ("NEAR DUPLICATES", [g for g in groups if not g.is_exact]),
    )
    for title, section_groups in sections:
        file_handle.write(f"{title}\n")
        file_handle.write("-" * 70 + "\n")
        for group in section_groups:
            file_handle.write(f"\nGroup {group.id}:\n")
            for ref in group.members:
                marker = "[KEEP]" if ref == group.representative else "[DUPE]"
                file_handle.write(f"  {marker} {ref}\n")
        file_handle.write("\n\n")


def _export_csv(groups: list[DuplicateGroup], file_handle: TextIO) -> None:
    """
    Export groups in CSV format.

    Notes:
        CSV includes: group_id, kind, status, path, score
    """
    writer = csv.writer(file_handle)
    writer.writerow(['group_id', 'kind', 'status', 'path', 'score'])
    for group in groups:
        for ref in group.members:
            score = group.score_of(ref)
            writer.writerow([
                group.id,
                group.kind.value,
                'keep' if ref == group.representative else 'duplicate',
                ref,
                '' if score is None else f'{score:.4f}',
            ])


def _export_json(groups: list[DuplicateGroup], file_handle: TextIO) -> None:
    json.dump({'groups': [g.to_dict() for g in groups]}, file_handle, indent=2)


def export_results(
    groups: list[DuplicateGroup],
    output_path: Path,
    export_format: str = 'txt'
) -> None:
    """
    Export duplicate groups to a file.

    Args:
        groups: Duplicate groups to export
        output_path: Path to output file
        export_format: 'txt', 'csv' or 'json'. Default: 'txt'

    Raises:
        ValueError: If export_format is not supported
        OSError: If file cannot be written
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}. Use 'txt', 'csv' or 'json'.")

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        if export_format == 'txt':
            _export_txt(groups, f)
        elif export_format == 'csv':
            _export_csv(groups, f)
        else:
            _export_json(groups, f)


__all__ = ['EXPORT_FORMATS', 'export_results']
