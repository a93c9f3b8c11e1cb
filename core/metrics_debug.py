from __future__ import annotations

from collections import Counter
from typing import Any, Dict

from core.models import ReconciledDataset


def compute_debug(dataset: ReconciledDataset) -> Dict[str, Any]:
    table = dataset.categories
    index = dataset.entities
    payload = {
        "files": list(dataset.files),
        "resolved_columns": {
            "categories": dict(table.columns),
            "advertisers": dict(index.columns),
        },
        "row_counts": {
            "verticals": len(table.categories),
            "verticals_dropped": int(table.dropped_rows),
            "mapped_verticals": len(index.by_category),
            "mapped_advertisers": sum(len(v) for v in index.by_category.values()),
            "unmatched_membership_rows": len(index.unmatched),
            "advertiser_details": len(dataset.details.details),
        },
        "details_failure": dataset.details.failure,
        "verticals_without_advertisers": [c.name for c in table.categories if not index.entities_for(c.name)],
        "unmatched_top": [],
    }
    if index.unmatched:
        payload["unmatched_top"] = [
            {"advertiser": name, "count": count} for name, count in Counter(index.unmatched).most_common(20)
        ]
    return payload
