# src/formpiper_shell/core/services/dataframe_service.py
import logging
from pathlib import Path
from typing import Any, Iterable, List

import pandas as pd

from formengine.model import ApplicationResult, FormValidationResult, Statistics

logger = logging.getLogger(__name__)

ELEMENT_COLUMNS = ["form_id", "id", "type", "name", "label", "value", "required", "disabled"]


def _type_name(value: Any) -> str:
    return getattr(value, "value", value) or ""


class DataFrameService:
    """
    Turns engine results into pandas tables for the shell.

    Both engine shapes are accepted: FormDescriptors from the full engine and
    flat BasicFormItems from the basic extractor.
    """

    def forms_frame(self, forms: Iterable[Any]) -> pd.DataFrame:
        rows = []
        for form in forms:
            if hasattr(form, "elements"):
                rows.append({
                    "id": form.id,
                    "type": form.type,
                    "name": form.name,
                    "method": form.method,
                    "action": form.action,
                    "elements": len(form.elements),
                    "required": form.structure.get("required_count", 0),
                })
            else:
                rows.append({
                    "id": form.id,
                    "type": form.type,
                    "name": form.name,
                    "method": "",
                    "action": "",
                    "elements": max(len(form.options), 1) if form.tag_name == "input-group" else 1,
                    "required": int(form.required),
                })
        return pd.DataFrame(rows, columns=["id", "type", "name", "method", "action", "elements", "required"])

    def elements_frame(self, forms: Iterable[Any]) -> pd.DataFrame:
        rows = []
        for form in forms:
            if hasattr(form, "elements"):
                for el in form.elements:
                    rows.append({
                        "form_id": form.id,
                        "id": el.id,
                        "type": _type_name(el.type),
                        "name": el.name,
                        "label": el.label,
                        "value": el.value,
                        "required": el.required,
                        "disabled": el.disabled,
                    })
            else:
                rows.append({
                    "form_id": "",
                    "id": form.id,
                    "type": form.type,
                    "name": form.name,
                    "label": form.label,
                    "value": form.value,
                    "required": form.required,
                    "disabled": False,
                })
        return pd.DataFrame(rows, columns=ELEMENT_COLUMNS)

    def statistics_frame(self, stats: Statistics) -> pd.DataFrame:
        rows = [{"metric": key, "value": value} for key, value in stats.model_dump().items()
                if not isinstance(value, dict)]
        rows.extend({"metric": f"type:{k}", "value": v} for k, v in sorted(stats.by_type.items()))
        return pd.DataFrame(rows, columns=["metric", "value"])

    def fill_frame(self, result: ApplicationResult) -> pd.DataFrame:
        rows: List[dict] = []
        for s in result.success:
            rows.append({"identifier": s.identifier, "status": "ok", "element_id": s.element_id,
                         "detail": s.method})
        for f in result.failed:
            hint = ", ".join(str(x.get("id", "")) for x in f.suggestions)
            rows.append({"identifier": f.identifier, "status": "failed", "element_id": f.element_id or "",
                         "detail": f"{f.reason} (did you mean: {hint})" if hint else f.reason})
        for w in result.warnings:
            rows.append({"identifier": w.identifier, "status": "warning", "element_id": w.element_id or "",
                         "detail": w.message})
        return pd.DataFrame(rows, columns=["identifier", "status", "element_id", "detail"])

    def validation_frame(self, result: FormValidationResult) -> pd.DataFrame:
        rows = []
        for element_id, r in result.results.items():
            issues = r.errors + r.warnings
            rows.append({
                "element_id": element_id,
                "valid": r.valid,
                "score": r.score,
                "errors": len(r.errors),
                "warnings": len(r.warnings),
                "first_issue": issues[0].message if issues else "",
            })
        return pd.DataFrame(rows, columns=["element_id", "valid", "score", "errors", "warnings", "first_issue"])

    @staticmethod
    def render(df: pd.DataFrame, max_rows: int = 25) -> str:
        if df.empty:
            return "   (No rows)"
        shown = df if max_rows <= 0 else df.head(max_rows)
        text = shown.to_string(index=False, justify='left')
        if len(df) > len(shown):
            text += f"\n   ... ({len(df) - len(shown)} more rows)"
        return text

    @staticmethod
    def export(df: pd.DataFrame, path: Path) -> Path:
        """Writes CSV or JSON depending on the suffix."""
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".json":
            df.to_json(path, orient="records", indent=2, force_ascii=False)
        else:
            df.to_csv(path, index=False)
        logger.info("Exported %d rows to %s", len(df), path)
        return path
