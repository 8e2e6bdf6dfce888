"""
Report formatting and display for the CLI interface.

Prints duplicate groups in a human-readable format.
"""

from __future__ import annotations

import os

from ..models import DuplicateGroup
from ..utils.formatters import format_size


def _file_size(ref: str) -> int:
    try:
        return os.path.getsize(ref)
    except OSError:
        return 0


def _print_member(group: DuplicateGroup, ref: str) -> None:
    marker = "  [KEEP]" if ref == group.representative else "  [DUPE]"
    score = group.score_of(ref)
    score_str = f"{score:.3f}" if score is not None else "n/a"
    print(f"{marker} {ref}")
    print(f"         {format_size(_file_size(ref))} | Sharpness: {score_str}")


def _calculate_statistics(groups: list[DuplicateGroup]) -> dict[str, int]:
    """
    Calculate statistics for duplicate groups.

    Returns:
        Dictionary with total_duplicates, total_groups and total_waste (bytes
        taken by members other than the representative)
    """
    return {
        'total_duplicates': sum(len(g.members) - 1 for g in groups),
        'total_groups': len(groups),
        'total_waste': sum(_file_size(ref) for g in groups for ref in g.duplicates),
    }


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def _print_groups(groups: list[DuplicateGroup], section_title: str) -> None:
    if not groups:
        return

    _print_section_header(section_title)

    for group in groups:
        print(f"\nGroup {group.id} ({group.member_count} files):")
        for ref in group.members:
            _print_member(group, ref)


def print_duplicate_report(groups: list[DuplicateGroup]) -> None:
    """
    Print a report of found duplicates.

    Notes:
        - Exact groups are listed before near groups, each in result order
        - The recommended keeper is marked [KEEP], others [DUPE]
    """
    exact_groups = [g for g in groups if g.is_exact]
    near_groups = [g for g in groups if not g.is_exact]

    print("\n" + "=" * 70)
    print("DUPLICATE IMAGE REPORT")
    print("=" * 70)

    exact_stats = _calculate_statistics(exact_groups)
    near_stats = _calculate_statistics(near_groups)

    print(f"\nExact duplicates found: {exact_stats['total_duplicates']} files in "
          f"{exact_stats['total_groups']} groups")
    print(f"Near duplicates found: {near_stats['total_duplicates']} files in "
          f"{near_stats['total_groups']} groups")

    _print_groups(exact_groups, "EXACT DUPLICATES (identical content)")
    _print_groups(near_groups, "NEAR DUPLICATES (visually similar)")

    total_waste = exact_stats['total_waste'] + near_stats['total_waste']
    print("\n" + "=" * 70)
    print(f"Total space recoverable: {format_size(total_waste)}")
    print("=" * 70)


__all__ = ['print_duplicate_report']
