"""Spec sheet renderers - spreadsheet and plain-text views of an export snapshot."""

import re
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from ..config import SPREADSHEET_SHEET_NAME
from ..models import ExportSnapshot

EMPTY = "-"

# (label, cell range, value getter); ranges follow the Meta single-image spec sheet layout
SPREADSHEET_FIELDS = [
    ("Name of Ad", "D26:H26", lambda s: s.ref_name or s.ad_name or "Untitled Ad"),
    ("Post Text", "D27:H29", lambda s: s.post_text),
    ("Name of Image", "D30", lambda s: s.image_name or "creative-image"),
    ("URL of Facebook Page", "D32:H32", lambda s: s.identity_link),
    ("Headline", "D34", lambda s: s.headline),
    ("Newsfeed Link Description", "D35", lambda s: s.description),
    ("Website Destination URL", "D36", lambda s: s.tracked_url or s.destination_url),
    ("Display link", "D37", lambda s: s.display_link),
    ("Call To Action", "D38", lambda s: s.cta),
]


def spreadsheet_filename(ref_name: str) -> str:
    sanitized = re.sub(r"[^a-z0-9]", "_", ref_name or "creative-spec", flags=re.IGNORECASE)
    return f"Meta_Creative_Spec_Sheet_{sanitized}.xlsx"


def render_spreadsheet(snapshot: ExportSnapshot) -> bytes:
    """Write the snapshot into a one-sheet workbook and return the .xlsx bytes."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SPREADSHEET_SHEET_NAME
    sheet.column_dimensions["C"].width = 30
    sheet.column_dimensions["D"].width = 60

    sheet["C24"] = "Meta Creative Spec Sheet"
    sheet["C24"].font = Font(bold=True, size=14)

    for label, cell_range, getter in SPREADSHEET_FIELDS:
        start = cell_range.split(":")[0]
        row = int(re.sub(r"\D", "", start))
        sheet.cell(row=row, column=3, value=label).font = Font(bold=True)

        if ":" in cell_range:
            sheet.merge_cells(cell_range)
        value = getter(snapshot)
        if value:
            sheet[start] = value
            sheet[start].alignment = Alignment(wrap_text=True, vertical="top")

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def render_text(snapshot: ExportSnapshot) -> str:
    """Human-readable spec sheet."""
    meta = snapshot.meta
    lines = [
        "Meta Creative Spec Sheet",
        "==========================",
        "",
        f"Ad Name: {snapshot.ref_name or 'Untitled Creative'}",
        "",
        "Primary Text:",
        snapshot.post_text or EMPTY,
        "",
        f"Headline: {snapshot.headline or EMPTY}",
        f"Description: {snapshot.description or EMPTY}",
        f"CTA: {snapshot.cta or EMPTY}",
        f"Image: {snapshot.image_name or EMPTY}",
        "",
        f"Platform: {snapshot.platform}",
        f"Device: {snapshot.device}",
        f"Ad Type: {snapshot.ad_type}",
        f"Ad Format: {snapshot.ad_format}",
        "",
        f"Destination URL: {snapshot.destination_url or EMPTY}",
        f"Tracked URL: {snapshot.tracked_url or EMPTY}",
        f"Display Link: {snapshot.display_link or EMPTY}",
    ]

    if snapshot.flight_start_date or snapshot.flight_end_date:
        lines.append(f"Flight: {snapshot.flight_start_date or EMPTY} to {snapshot.flight_end_date or EMPTY}")

    lines += [
        "",
        "Meta Details:",
        f"Company Overview: {meta.company or EMPTY}",
        f"Company Info: {meta.company_info or EMPTY}",
        f"Campaign Objective: {meta.objective or EMPTY}",
        f"Notes: {meta.notes or EMPTY}",
        f"Facebook Link: {meta.identity_link or EMPTY}",
        f"Website: {meta.url or EMPTY}",
    ]

    if meta.identity_method:
        lines.append(f"Page Data Source: {meta.identity_method} (derived from the page URL)")

    return "\n".join(lines)
