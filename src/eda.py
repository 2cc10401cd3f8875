"""
eda.py
Exploratory Data Analysis for NYPD Shooting Incident Data

Design principles:
- Every chart answers one question about shooting murders
- Unknown perpetrator/victim attributes stay visible as "Missing", never hidden
- Charts are built from the aggregate tables only, never from raw rows
- A single `run_eda()` call reproduces every figure and printed finding
"""

from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd
import seaborn as sns

from aggregation import aggregate_murders, fit_monthly_trend, months_elapsed
from data_cleaning import CATEGORICAL_COLUMNS, run_pipeline
from data_collection import DATA_URL

# ── Style ─────────────────────────────────────────────────────────────────────
PALETTE  = "YlOrRd"
ACCENT   = "#D62728"   # red: trend line and leading bar
NEUTRAL  = "#4C72B0"   # blue: standard bars and lines
BG_GRAY  = "#F7F7F7"
FIG_DIR  = Path("reports/figures")

MISSING_LABEL = "Missing"
AGE_GROUP_ORDER = ["<18", "18-24", "25-44", "45-64", "65+"]

plt.rcParams.update({
    "figure.facecolor": BG_GRAY,
    "axes.facecolor":   BG_GRAY,
    "axes.spines.top":  False,
    "axes.spines.right": False,
    "axes.labelsize":   11,
    "axes.titlesize":   13,
    "axes.titleweight": "bold",
    "xtick.labelsize":  9,
    "ytick.labelsize":  9,
    "font.family":      "sans-serif",
})


# ── Helpers ───────────────────────────────────────────────────────────────────

def _save(fig: plt.Figure, name: str, fig_dir: Optional[Path]):
    if fig_dir is None:
        plt.close(fig)
        return
    fig_dir = Path(fig_dir)
    fig_dir.mkdir(parents=True, exist_ok=True)
    path = fig_dir / f"{name}.png"
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"  ✓ Saved → {path}")


def _source_note(ax, note="Source: NYPD Shooting Incident Data (Historic) / NYC Open Data"):
    ax.annotate(note, xy=(0, -0.12), xycoords="axes fraction",
                fontsize=7, color="gray")


def _no_data(ax, title: str):
    ax.set_title(title)
    ax.text(0.5, 0.5, "No murders in dataset", ha="center", va="center",
            transform=ax.transAxes, color="gray")


def fmt_thousands(ax, axis="y"):
    fmt = mticker.FuncFormatter(lambda x, _: f"{x:,.0f}")
    if axis == "y":
        ax.yaxis.set_major_formatter(fmt)
    else:
        ax.xaxis.set_major_formatter(fmt)


def _ordered_labels(labels, preferred=None) -> list:
    """Preferred labels first (in their order), the rest sorted, Missing last."""
    labels = set(labels)
    head = [l for l in (preferred or []) if l in labels]
    tail = sorted(l for l in labels if l not in head and l != MISSING_LABEL)
    return head + tail + ([MISSING_LABEL] if MISSING_LABEL in labels else [])


# ── EDA 1: Value Listings ─────────────────────────────────────────────────────

def eda_unique_values(df: pd.DataFrame):
    """
    Q: Which categories does each attribute actually take after cleaning?
    Missing is listed explicitly so scrubbed sentinels remain visible.
    """
    print("=" * 60)
    print("EDA 1 | CATEGORICAL VALUES")
    print("=" * 60)

    for col in CATEGORICAL_COLUMNS:
        values = df[col].fillna(MISSING_LABEL).astype(str).unique()
        print(f"  {col:<11} {', '.join(_ordered_labels(values, AGE_GROUP_ORDER))}")


# ── EDA 2: Summary Table ──────────────────────────────────────────────────────

def eda_summary_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """Prints and returns an overall summary of the canonical dataset."""
    print("\n" + "=" * 60)
    print("EDA 2 | SUMMARY STATISTICS")
    print("=" * 60)

    summary = df.describe(include="all")
    print(summary.to_string())
    print(f"\n  Incidents: {len(df):,}   Murders: {int(df['Murder'].sum()):,}")
    return summary


# ── EDA 3: Murders Over Time ──────────────────────────────────────────────────

def plot_monthly_murders(by_month: pd.DataFrame, trend: bool = True) -> plt.Figure:
    """
    Q: Are shooting murders rising or falling?
    Months with no murders are absent from the table, so the line skips them.
    """
    fig, ax = plt.subplots(figsize=(14, 5))
    title = "Shooting Murders per Month"
    dated = by_month.dropna(subset=["Month"])

    if dated.empty:
        _no_data(ax, title)
        return fig

    ax.plot(dated["Month"], dated["Count"], color=NEUTRAL, linewidth=1.5, label="Monthly murders")

    fit = fit_monthly_trend(dated) if trend else None
    if fit is not None:
        slope, intercept = fit
        ax.plot(dated["Month"], intercept + slope * months_elapsed(dated["Month"]),
                color=ACCENT, linestyle="--", linewidth=2,
                label=f"Linear trend ({slope:+.2f}/month)")

    ax.set_title(title)
    ax.set_xlabel("Month")
    ax.set_ylabel("Murders")
    ax.legend(fontsize=8)
    fmt_thousands(ax)
    _source_note(ax)
    return fig


# ── EDA 4: Murders by Borough ─────────────────────────────────────────────────

def plot_borough_murders(by_borough: pd.DataFrame) -> plt.Figure:
    """Q: Where do shooting murders concentrate?"""
    fig, ax = plt.subplots(figsize=(10, 5))
    title = "Shooting Murders by Borough"

    if by_borough.empty:
        _no_data(ax, title)
        return fig

    labels = by_borough["Borough"].fillna(MISSING_LABEL).astype(str)
    colors = [ACCENT if i == 0 else NEUTRAL for i in range(len(by_borough))]
    ax.bar(labels, by_borough["Count"], color=colors, edgecolor="white")
    for i, v in enumerate(by_borough["Count"]):
        ax.text(i, v, f"{v:,}", ha="center", va="bottom", fontsize=8)

    ax.set_title(title)
    ax.set_ylabel("Murders")
    fmt_thousands(ax)
    _source_note(ax)
    return fig


# ── EDA 5-7: Perpetrator × Victim Heatmaps ────────────────────────────────────

def plot_count_heatmap(table: pd.DataFrame, row: str, col: str, title: str,
                       order: Optional[list] = None) -> plt.Figure:
    """
    Tile grid of murder counts, perpetrator attribute down, victim across.
    Combinations that never occur are left blank rather than drawn as zero.
    """
    fig, ax = plt.subplots(figsize=(9, 7))

    if table.empty:
        _no_data(ax, title)
        return fig

    labelled = table.assign(**{
        row: table[row].fillna(MISSING_LABEL).astype(str),
        col: table[col].fillna(MISSING_LABEL).astype(str),
    })
    grid = labelled.pivot(index=row, columns=col, values="Count")
    grid = grid.reindex(index=_ordered_labels(grid.index, order),
                        columns=_ordered_labels(grid.columns, order))

    sns.heatmap(grid, ax=ax, cmap=PALETTE, annot=True, fmt=".0f",
                linewidths=0.5, cbar_kws={"label": "Murders"})
    ax.set_title(title)
    ax.set_ylabel(f"Perpetrator ({row})")
    ax.set_xlabel(f"Victim ({col})")
    _source_note(ax)
    return fig


# ── EDA 8: Conclusion ─────────────────────────────────────────────────────────

def eda_conclusion(tables: dict[str, pd.DataFrame]):
    """Prints the findings the charts support, computed from the tables."""
    print("\n" + "=" * 60)
    print("CONCLUSION")
    print("=" * 60)

    total = int(tables["by_borough"]["Count"].sum())
    if total == 0:
        print("  No shooting murders in the dataset; nothing to conclude.")
        return

    by_borough = tables["by_borough"]
    top = by_borough.iloc[0]
    top_borough = top["Borough"] if pd.notna(top["Borough"]) else MISSING_LABEL
    print(f"  Shooting murders analysed: {total:,}")
    print(f"  Most affected borough: {top_borough} "
          f"({top['Count']:,}, {top['Count'] / total * 100:.1f}% of murders)")

    fit = fit_monthly_trend(tables["by_month"])
    if fit is not None:
        direction = "rising" if fit[0] > 0 else "falling" if fit[0] < 0 else "flat"
        print(f"  Monthly trend: {direction} ({fit[0]:+.3f} murders/month per month)")

    by_sex = tables["by_sex"]
    pair = by_sex.loc[by_sex["Count"].idxmax()]
    print(f"  Most common perpetrator/victim sex pairing: "
          f"{pair['PerpSex'] if pd.notna(pair['PerpSex']) else MISSING_LABEL} → "
          f"{pair['VictimSex'] if pd.notna(pair['VictimSex']) else MISSING_LABEL} ({pair['Count']:,})")

    by_age = tables["by_age"]
    unknown_perp = int(by_age.loc[by_age["PerpAge"].isna(), "Count"].sum())
    print(f"  Murders with unknown perpetrator age: {unknown_perp:,} "
          f"({unknown_perp / total * 100:.1f}%)")
    print("  ⚠ Perpetrator attributes are missing for a large share of incidents; "
          "cross-tabulations describe known cases only and may be biased.")


# ── Pipeline Orchestrator ─────────────────────────────────────────────────────

def run_eda(source: str = DATA_URL, fig_dir: Optional[Path] = FIG_DIR,
            on_malformed: str = "raise") -> dict[str, pd.DataFrame]:
    """
    Run the full analysis in one call: clean, aggregate, chart, conclude.
    Figures are written to `fig_dir`; pass None to render without saving.
    """
    df = run_pipeline(source, on_malformed=on_malformed)

    eda_unique_values(df)
    eda_summary_statistics(df)

    tables = aggregate_murders(df)

    print("\n" + "=" * 60)
    print("CHARTS")
    print("=" * 60)
    _save(plot_monthly_murders(tables["by_month"]), "01_murders_by_month", fig_dir)
    _save(plot_borough_murders(tables["by_borough"]), "02_murders_by_borough", fig_dir)
    _save(plot_count_heatmap(tables["by_age"], "PerpAge", "VictimAge",
                             "Murders: Perpetrator vs Victim Age Group", order=AGE_GROUP_ORDER),
          "03_perp_victim_age", fig_dir)
    _save(plot_count_heatmap(tables["by_race"], "PerpRace", "VictimRace",
                             "Murders: Perpetrator vs Victim Race"),
          "04_perp_victim_race", fig_dir)
    _save(plot_count_heatmap(tables["by_sex"], "PerpSex", "VictimSex",
                             "Murders: Perpetrator vs Victim Sex"),
          "05_perp_victim_sex", fig_dir)

    eda_conclusion(tables)
    return tables


# ── Entry Point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    run_eda()
