import os
import logging
from typing import List, Sequence

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import PatternFill

from .models import ExtractionResult
from .settings import HIGHLIGHT_COLOR, OUTPUT_ROOT, SUMMARY_FILE, ensure_dir
from .utils import extension_for, parse_data_uri, sanitize_filename

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ["Dashboard", "Reference", "Graphs", "Tables", "Output Folder", "Error"]


def _write_uri(uri: str, out_dir: str, base: str) -> str:
    mime, data = parse_data_uri(uri)
    out_path = os.path.join(ensure_dir(out_dir), f"{base}{extension_for(mime)}")
    with open(out_path, "wb") as f:
        f.write(data)
    return out_path

def save_results(results: Sequence[ExtractionResult], output_root: str = OUTPUT_ROOT) -> str:
    """
    <root>/<Dashboard>/graphs/graph_<n>.<ext>
    <root>/<Dashboard>/tables/<label or table_n>.png
    <root>/summary.xlsx
    Returns the summary path.
    """
    root = ensure_dir(os.path.abspath(output_root))
    rows = []
    used: set = set()
    for i, res in enumerate(results):
        folder = sanitize_filename(res.title or res.reference.value) or f"dashboard_{i + 1}"
        if folder.lower() in used:
            folder = f"{folder}_{i + 1}"
        used.add(folder.lower())
        dash_dir = os.path.join(root, folder)

        for g in res.graphics or ():
            _write_uri(g.uri, os.path.join(dash_dir, "graphs"), f"graph_{g.index + 1}")

        seen_labels: set = set()
        for t in res.tables or ():
            base = sanitize_filename(t.label or "") or f"table_{t.index + 1}"
            if base.lower() in seen_labels:
                base = f"{base}_{t.index + 1}"
            seen_labels.add(base.lower())
            _write_uri(t.uri, os.path.join(dash_dir, "tables"), base)

        logger.info(f"[{folder}] graphs={len(res.graphics or ())} tables={len(res.tables or ())} → {dash_dir}")
        rows.append({
            "Dashboard": res.title or "",
            "Reference": f"{res.reference.kind}:{res.reference.value}",
            "Graphs": len(res.graphics or ()),
            "Tables": len(res.tables or ()),
            "Output Folder": dash_dir,
            "Error": res.error or "",
        })

    return write_summary(rows, os.path.join(root, SUMMARY_FILE))

def write_summary(rows: List[dict], summary_path: str) -> str:
    ensure_dir(os.path.dirname(summary_path) or ".")
    pd.DataFrame(rows, columns=SUMMARY_COLUMNS).to_excel(summary_path, sheet_name="Summary", index=False)

    highlight = PatternFill(start_color=HIGHLIGHT_COLOR, end_color=HIGHLIGHT_COLOR, fill_type="solid")
    wb = load_workbook(summary_path)
    ws = wb["Summary"]
    for i, row in enumerate(rows, start=2):
        if row.get("Error"):
            for j in range(1, len(SUMMARY_COLUMNS) + 1):
                ws.cell(row=i, column=j).fill = highlight
    wb.save(summary_path)
    logger.info(f"Summary saved: {summary_path}")
    return summary_path
