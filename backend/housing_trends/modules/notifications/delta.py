"""
Comparison of a saved search's current aggregates against the ones stored
when its last notification fired.
"""
from typing import Dict, Optional
from housing_trends.models.notification import (
    DeltaSummary, FieldDelta, KindDelta, NotificationMessage, NotificationType
)
from housing_trends.models.saved_search import SavedSearch
from housing_trends.models.search import AggregateSummary, DataType

KIND_LABELS = {
    DataType.HOUSING: "Home prices",
    DataType.RENT: "Rents",
    DataType.TRENDS: "Affordability",
}


def field_delta(previous: Optional[float], current: Optional[float]) -> FieldDelta:
    if previous is None or current is None:
        return FieldDelta(previous=previous, current=current)

    absolute_change = round(current - previous, 2)
    percentage_change = None
    if previous != 0:
        percentage_change = round((current - previous) / abs(previous) * 100, 2)

    return FieldDelta(
        previous=previous,
        current=current,
        absolute_change=absolute_change,
        percentage_change=percentage_change
    )


def kind_delta(previous: AggregateSummary, current: AggregateSummary) -> KindDelta:
    return KindDelta(
        count=field_delta(float(previous.count), float(current.count)),
        min=field_delta(previous.min, current.min),
        max=field_delta(previous.max, current.max),
        avg=field_delta(previous.avg, current.avg),
    )


def compute_delta(
    current: Dict[DataType, AggregateSummary],
    previous: Optional[Dict[DataType, AggregateSummary]]
) -> DeltaSummary:
    if previous is None:
        return DeltaSummary(has_baseline=False, current=current)

    changes = {}
    for kind, summary in current.items():
        baseline = previous.get(kind)
        if baseline is not None:
            changes[kind] = kind_delta(baseline, summary)

    return DeltaSummary(has_baseline=True, current=current, changes=changes)


def _format_change(delta: FieldDelta) -> str:
    if delta.percentage_change is None:
        return "no comparable prior value"
    sign = "+" if delta.percentage_change >= 0 else ""
    return f"{sign}{delta.percentage_change}% since the last update"


def build_market_update(search: SavedSearch, delta: DeltaSummary) -> NotificationMessage:
    """Render the market update message for one saved search"""
    lines = [f"Here is the latest market update for your saved search \"{search.name}\"."]

    for kind, summary in delta.current.items():
        label = KIND_LABELS.get(DataType(kind), str(kind))
        if summary.count == 0 or summary.avg is None:
            lines.append(f"{label}: no matching records.")
            continue

        line = f"{label}: {summary.count} records, average {summary.avg:,.2f}"
        change = delta.changes.get(kind)
        if change is not None:
            line += f" ({_format_change(change.avg)})"
        lines.append(line + ".")

    if not delta.has_baseline:
        lines.append("This is your first update for this search.")

    return NotificationMessage(
        recipient_id=search.owner_id,
        subject=f"Market Update: {search.name}",
        body="\n".join(lines),
        metadata={
            "saved_search_id": search.id,
            "delta": delta.model_dump(mode="json"),
        },
        type=NotificationType.MARKET_UPDATE
    )
