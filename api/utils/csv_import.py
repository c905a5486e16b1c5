import csv
import io
from typing import Dict, List

CSV_COLUMNS = ("name", "email", "status")


def rows_from_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse a participant CSV with a header row. Header names are matched
    case-insensitively; unknown columns are ignored and empty cells dropped,
    so a missing status falls back to the default.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValueError("CSV file is empty")
    headers = {name: (name or "").strip().lower() for name in reader.fieldnames}
    if not {"name", "email"} <= set(headers.values()):
        raise ValueError("CSV header must include name and email columns")

    rows = []
    for record in reader:
        row = {}
        for raw, value in record.items():
            column = headers.get(raw)
            if column in CSV_COLUMNS and value is not None and value.strip():
                row[column] = value.strip()
        rows.append(row)
    return rows
