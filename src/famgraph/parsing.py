"""Bulk import of node records from JSON exports and GEDCOM files."""

import json
import logging
from pathlib import Path
import re

from ged4py import GedcomReader

logger = logging.getLogger(__name__)

# Qualifiers seen in free-form GEDCOM dates ("ABT 1905", "About: 1746-00-00", ...)
DATE_QUALIFIERS = re.compile(
    r"^(ABT\.?|ABOUT|BEF\.?|BEFORE|AFT\.?|AFTER|EST\.?|CAL\.?|FROM|TO|BET\.?|INT\.?|CIRCA|CA\.?|AROUND):?\s*",
    flags=re.IGNORECASE,
)
YEAR = re.compile(r"(?<!\d)(\d{4})(?!\d)")


def load_json_nodes(path: Path) -> list[dict]:
    """Read node records from a JSON list or a {"nodes": [...]} document."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("nodes", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a list of nodes")

    records = [r for r in payload if isinstance(r, dict) and r.get("id")]
    if len(records) != len(payload):
        logger.warning("%s: skipped %d records without an id", path, len(payload) - len(records))
    return records


def parse_year(date_str: str | None) -> int | None:
    """
    Pull the (first) year out of a GEDCOM date string.

    Handles formats like "25 NOV 1954", "ABT 1905", "(01-27-1920)",
    "(About:1746-00-00)", "BET 1900 AND 1905" and "(1789?)".
    """
    if not date_str:
        return None

    s = date_str.strip().strip("()").rstrip("?").strip()
    s = DATE_QUALIFIERS.sub("", s)

    match = YEAR.search(s)
    return int(match.group(1)) if match else None


def gedcom_node_id(xref_id: str) -> str:
    """Node ID for a GEDCOM xref like '@I_347421849@'."""
    return xref_id.strip("@")


def extract_label(indi) -> str:
    """Display name of an individual record."""
    name_rec = indi.sub_tag("NAME")
    if name_rec is None or name_rec.value is None:
        return "Unknown"

    # ged4py returns NAME as tuple: (given, surname, suffix)
    if isinstance(name_rec.value, tuple):
        parts = [p for p in name_rec.value if p]
        return " ".join(parts) if parts else "Unknown"

    # Fallback: string format "Given /Surname/"
    return " ".join(str(name_rec.value).replace("/", " ").split()) or "Unknown"


def extract_year(indi, tag: str) -> int | None:
    """Year of an event tag (BIRT, DEAT, ...)."""
    event = indi.sub_tag(tag)
    if event is None:
        return None
    date_rec = event.sub_tag("DATE")
    # ged4py may return DateValue objects
    if date_rec is None or not date_rec.value:
        return None
    return parse_year(str(date_rec.value))


def extract_sex(indi) -> str | None:
    sex_rec = indi.sub_tag("SEX")
    if sex_rec is None or not sex_rec.value:
        return None
    return sex_rec.value if sex_rec.value in ("M", "F") else "X"


def load_gedcom_nodes(path: Path) -> list[dict]:
    """
    Convert a GEDCOM file into raw node records.

    Families are recorded one-sided on purpose: the wife appears only in the
    husband's partner list and parents only in each child's parentIds. The
    normalizer mirrors the rest.
    """
    records: dict[str, dict] = {}

    with GedcomReader(str(path)) as reader:
        # First pass: individuals
        for rec in reader.records0("INDI"):
            if rec.xref_id is None:
                continue
            node_id = gedcom_node_id(rec.xref_id)
            records[node_id] = {
                "id": node_id,
                "label": extract_label(rec),
                "sex": extract_sex(rec),
                "year": extract_year(rec, "BIRT"),
                "deathYear": extract_year(rec, "DEAT"),
                "parentIds": [],
                "partners": [],
                "childrenIds": [],
            }

        # Second pass: families
        for rec in reader.records0("FAM"):
            husb = rec.sub_tag("HUSB")
            wife = rec.sub_tag("WIFE")
            husb_id = gedcom_node_id(husb.xref_id) if husb and husb.xref_id else None
            wife_id = gedcom_node_id(wife.xref_id) if wife and wife.xref_id else None

            if husb_id in records and wife_id in records:
                records[husb_id]["partners"].append(wife_id)

            parent_ids = [pid for pid in (husb_id, wife_id) if pid in records]
            for child in rec.sub_tags("CHIL"):
                if not child.xref_id:
                    continue
                child_id = gedcom_node_id(child.xref_id)
                if child_id in records:
                    records[child_id]["parentIds"].extend(parent_ids)

    logger.info("Read %d individuals from %s", len(records), path)
    return list(records.values())
