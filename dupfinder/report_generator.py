"""
CSV report generation for duplicate scans.

Features:
- Header statistics as # comments
- One row per group member (representative first)
- Failed buckets listed after the rows
- UTF-8 encoding (non-ASCII filenames)
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import TextIO

import structlog

from dupfinder.models import ScanResult

logger = structlog.get_logger(__name__)


class ReportGenerator:
    """Generate a dry-run CSV report from a ScanResult."""

    CSV_COLUMNS = [
        "group_id",
        "file_path",
        "size_bytes",
        "size_mb",
        "role",
    ]

    def generate_csv(self, scan_result: ScanResult, output_path: Path) -> Path:
        """
        Generate CSV report file.

        Args:
            scan_result: Scan result with duplicate groups
            output_path: Where to save the CSV file

        Returns:
            Path to generated CSV file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            self._write(f, scan_result)

        logger.info(
            "dupfinder_report_generated",
            output_path=str(output_path),
            groups=scan_result.duplicate_groups_count,
        )

        return output_path

    def generate_csv_string(self, scan_result: ScanResult) -> str:
        """Generate CSV content as string."""
        output = io.StringIO()
        self._write(output, scan_result)
        return output.getvalue()

    def _write(self, f: TextIO, scan_result: ScanResult) -> None:
        self._write_header_stats(f, scan_result)

        writer = csv.DictWriter(f, fieldnames=self.CSV_COLUMNS)
        writer.writeheader()

        for group in scan_result.groups:
            for index, file_path in enumerate(group.files):
                writer.writerow(
                    {
                        "group_id": group.group_id,
                        "file_path": str(file_path),
                        "size_bytes": group.size_bytes,
                        "size_mb": round(group.size_bytes / (1024 * 1024), 2),
                        "role": "representative" if index == 0 else "duplicate",
                    }
                )

        for failure in scan_result.failures:
            f.write(
                f"# Failed bucket: {failure.size_bytes} bytes, "
                f"{len(failure.candidates)} files, {failure.error}\n"
            )

    @staticmethod
    def _write_header_stats(f: TextIO, scan_result: ScanResult) -> None:
        """Write header statistics as CSV comments."""
        f.write(f"# Scan Date: {scan_result.scan_date.strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"# Total Files Scanned: {scan_result.total_scanned:,}\n")
        f.write(f"# Duplicate Groups: {scan_result.duplicate_groups_count:,}\n")
        f.write(f"# Total Duplicates: {scan_result.total_duplicates:,} files\n")
        f.write(f"# Space Reclaimable: {scan_result.space_reclaimable_bytes:,} bytes\n")
        if scan_result.partial:
            f.write(f"# Failed Buckets: {len(scan_result.failures)} (partial result)\n")
