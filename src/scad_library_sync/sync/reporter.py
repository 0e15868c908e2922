"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_report`` -- post-sync summary across all profiles.
- ``report_to_json`` -- structured dict for ``--json`` CLI output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProfileReport, SyncOutcome

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_profile_report(report: ProfileReport) -> str:
    """Format one profile's pass.

    Sections are only included when they contain at least one result.
    Unchanged files are summarised by count only to avoid excessive output.
    """
    lines: list[str] = []

    lines.append(f"{report.profile_name} ({report.profile_id}) -- {report.mode}")
    if report.listing_error:
        lines.append(f"  Skipped: {report.listing_error}")
        return "\n".join(lines)

    lines.append(
        f"  {len(report.updated)} updated, {len(report.unchanged)} unchanged, "
        f"{len(report.skipped)} user files kept, {len(report.failed)} failed"
    )

    if report.updated:
        lines.append("  Written:")
        for r in report.updated:
            lines.append(f"    {r.rel_path}")

    if report.skipped:
        lines.append("  Kept (user files):")
        for r in report.skipped:
            lines.append(f"    {r.rel_path}")

    if report.failed:
        lines.append("  Failed:")
        for r in report.failed:
            lines.append(f"    {r.rel_path}: {r.error}")

    if report.manifest_error:
        lines.append(f"  Manifest not saved: {report.manifest_error}")

    return "\n".join(lines)


def format_sync_report(outcome: SyncOutcome) -> str:
    """Format a complete init/update outcome as human-readable text."""
    if not outcome.ok:
        return f"Error: {outcome.error}"

    sections = [format_profile_report(r) for r in outcome.reports]
    if not sections:
        return "No profiles configured."
    return "\n\n".join(sections)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(outcome: SyncOutcome) -> dict:
    """Convert an outcome to a structured dict for JSON serialisation."""
    profiles = []
    for report in outcome.reports:
        results_list = []
        for r in report.results:
            entry: dict = {"path": r.rel_path, "action": r.action.value}
            if r.fingerprint:
                entry["fingerprint"] = r.fingerprint
            if r.error:
                entry["error"] = r.error
            results_list.append(entry)

        profiles.append(
            {
                "profile_id": report.profile_id,
                "profile_name": report.profile_name,
                "mode": report.mode,
                "ok": report.ok,
                "listing_error": report.listing_error,
                "manifest_error": report.manifest_error,
                "started_at": report.started_at,
                "completed_at": report.completed_at,
                "counts": {
                    "updated": len(report.updated),
                    "unchanged": len(report.unchanged),
                    "skipped": len(report.skipped),
                    "failed": len(report.failed),
                },
                "results": results_list,
            }
        )

    return {
        "ok": outcome.ok,
        "error": outcome.error,
        "messages": list(outcome.messages),
        "profiles": profiles,
    }
