"""Export snapshots and plain-text reports for A/B tests."""

from typing import Any

from .models import ABTest

NO_RESULTS = "No results available"


def export_results(test: ABTest) -> dict[str, Any]:
    """JSON-serialisable snapshot of a test, its variants and raw results."""
    summary = test.model_dump(
        mode="json",
        by_alias=True,
        include={"id", "name", "status", "start_date", "end_date", "confidence", "winner"},
    )
    variants = [
        v.model_dump(mode="json", by_alias=True, include={"id", "name", "weight", "modifications"})
        for v in test.variants
    ]
    results = (
        [r.model_dump(mode="json", by_alias=True) for r in test.results]
        if test.results is not None
        else None
    )
    return {"test": summary, "variants": variants, "results": results}


def generate_report(test: ABTest | None) -> str:
    """Human-readable summary; NO_RESULTS when nothing has been recorded."""
    if test is None or not test.results:
        return NO_RESULTS

    lines = [
        f"A/B Test Report: {test.name}",
        "========================",
        "",
        f"Status: {test.status}",
        f"Confidence: {test.confidence:.2f}%",
    ]
    if test.winner:
        lines.append(f"Winner: {test.winner}")
    lines.append("")
    lines.append("Results:")

    for result in test.results:
        variant = test.variant(result.variant_id)
        lines += [
            "",
            f"{variant.name if variant else 'Variant'}:",
            f"- Submissions: {result.submissions}",
            f"- Conversions: {result.conversions}",
            f"- Conversion Rate: {result.completion_rate:.2f}%",
            f"- Average Time: {result.average_time:.2f}s",
            f"- Drop-off Rate: {result.drop_off_rate:.2f}%",
        ]

    if len(test.results) >= 2:
        baseline = test.results[0].completion_rate
        if baseline:
            improvement = (test.results[1].completion_rate - baseline) / baseline * 100
            rendered = f"{'+' if improvement > 0 else ''}{improvement:.2f}%"
        else:
            rendered = "n/a"
        lines += ["", "", f"Improvement: {rendered}"]

    return "\n".join(lines) + "\n"
