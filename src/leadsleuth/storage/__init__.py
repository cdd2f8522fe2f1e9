"""Result export."""

from leadsleuth.storage.export import (
    export_batch_report,
    export_results_to_csv,
    export_results_to_jsonl,
    read_requests,
)

__all__ = ["export_batch_report", "export_results_to_csv", "export_results_to_jsonl", "read_requests"]
