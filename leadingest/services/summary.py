from __future__ import annotations

from ..models.ingest_result import IngestResult

"""SUMMARY line rendering."""


def _fmt_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(result: IngestResult) -> str:
    """Render the SUMMARY line for one upload.

    Format::

        SUMMARY file={name} kind={kind} total={total} inserted={inserted}
        rejected={rejected} batches={batches} natures={n} elapsed_sec={s}
        throughput_rps={rps} avg_batch_sec={avg} p95_batch_sec={p95}

    Examples:
        >>> r = IngestResult(file_name="gst.xlsx", kind="gst", total_records=2,
        ...                  inserted_records=1, batches=1, business_nature_rows=2,
        ...                  elapsed_seconds=0.5)
        >>> render_summary_line(r)
        'SUMMARY file=gst.xlsx kind=gst total=2 inserted=1 rejected=0 batches=1 natures=2 elapsed_sec=0.5 throughput_rps=2 avg_batch_sec=0 p95_batch_sec=0'
    """
    return (
        f"SUMMARY file={result.file_name} "
        f"kind={result.kind} "
        f"total={result.total_records} "
        f"inserted={result.inserted_records} "
        f"rejected={result.rejected_count} "
        f"batches={result.batches} "
        f"natures={result.business_nature_rows} "
        f"elapsed_sec={_fmt_number(result.elapsed_seconds)} "
        f"throughput_rps={_fmt_number(result.throughput_rows_per_sec)} "
        f"avg_batch_sec={_fmt_number(result.avg_batch_seconds)} "
        f"p95_batch_sec={_fmt_number(result.p95_batch_seconds)}"
    )
