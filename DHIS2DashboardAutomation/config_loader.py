from typing import Any, Dict, Iterable, List, Optional, Union
import os
import pandas as pd
from .models import DashboardReference

def load_dashboards_from_excel(xlsx_path: str, sheet_name: Optional[str] = None) -> List[DashboardReference]:
    """
    Excel columns: dashboard_id, dashboard_name, label (all optional per row)
    Returns references in sheet order:
      - rows with a dashboard_id are opened by link; dashboard_name (or label) titles the result
      - rows with only a dashboard_name are opened by clicking that name in the control bar
      - rows with neither are skipped
    """
    sheet = sheet_name or "Dashboards"
    if not os.path.isfile(xlsx_path):
        raise FileNotFoundError(f"Excel config '{xlsx_path}' not found.")

    df = pd.read_excel(xlsx_path, sheet_name=sheet, dtype=str).fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    if not ({"dashboard_id", "dashboard_name"} & set(df.columns)):
        raise ValueError("Excel sheet needs a 'dashboard_id' or 'dashboard_name' column.")

    refs: List[DashboardReference] = []
    for _, r in df.iterrows():
        item = {
            "id": str(r.get("dashboard_id", "")).strip(),
            "name": str(r.get("dashboard_name", "")).strip(),
            "label": str(r.get("label", "")).strip(),
        }
        if not (item["id"] or item["name"]):
            continue
        refs.append(DashboardReference.from_dict(item))
    return refs

def parse_dashboards(items: Iterable[Union[DashboardReference, Dict[str, Any], str]]) -> List[DashboardReference]:
    """Plain strings are treated as dashboard ids."""
    refs: List[DashboardReference] = []
    for it in items:
        if isinstance(it, DashboardReference):
            refs.append(it)
        elif isinstance(it, dict):
            refs.append(DashboardReference.from_dict(it))
        else:
            refs.append(DashboardReference.by_id(str(it).strip()))
    return refs
