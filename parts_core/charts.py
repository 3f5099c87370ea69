from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def range_by_part_chart(summary: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(summary)
        .mark_bar()
        .encode(
            x=alt.X("range:Q", title="Difference Range"),
            y=alt.Y("part_id:N", title="Part", sort="-x"),
            color=alt.Color("coefficient_of_variation:Q", title="CV %", scale=alt.Scale(scheme="orangered")),
            tooltip=[
                alt.Tooltip("part_id:N", title="Part"),
                alt.Tooltip("members:Q", title="Locations"),
                alt.Tooltip("mean:Q", title="Mean", format=",.2f"),
                alt.Tooltip("std_dev:Q", title="Std Dev", format=",.2f"),
                alt.Tooltip("range:Q", title="Range", format=","),
            ],
        )
    )


def member_difference_chart(members: pd.DataFrame, mean: float) -> alt.LayerChart:
    bars = (
        alt.Chart(members)
        .mark_bar()
        .encode(
            x=alt.X("location:N", title="Branch", sort=None),
            y=alt.Y("difference:Q", title="Difference"),
            color=alt.condition(alt.datum.difference >= mean, alt.value("#16a34a"), alt.value("#dc2626")),
            tooltip=[
                alt.Tooltip("location:N", title="Branch"),
                alt.Tooltip("difference:Q", title="Difference", format=","),
                alt.Tooltip("deviation_pct:Q", title="vs Mean %", format=".2f"),
            ],
        )
    )
    rule = alt.Chart(pd.DataFrame({"mean": [mean]})).mark_rule(strokeDash=[4, 4], color="#6b7280").encode(y="mean:Q")
    return alt.layer(bars, rule)
