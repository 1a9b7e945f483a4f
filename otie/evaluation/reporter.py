"""Generate replay reports: per-tick CSV, JSON summary and a markdown table."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd


def summarize_replay(records: list[dict]) -> dict:
    """Aggregate a replay into headline numbers.

    Returns:
        Dict with tick/message counts, intervention and escalation counts,
        anxiety statistics, time spent per anxiety state and mode usage.
    """
    if not records:
        return {"ticks": 0}

    df = pd.DataFrame(records)
    messages = df[df["event"] == "message"]
    proactive = df[df["proactive"].astype(bool)]

    tick_seconds = df["elapsed_seconds"].diff().median()
    tick_seconds = float(tick_seconds) if pd.notna(tick_seconds) else 0.0

    return {
        "ticks": int(len(df)),
        "duration_minutes": float(df["elapsed_seconds"].max() - df["elapsed_seconds"].min()) / 60.0,
        "messages": int(len(messages)),
        "proactive_interventions": int(len(proactive)),
        "proactive_reasons": proactive["proactive_reason"].value_counts().to_dict(),
        "tools_offered": int(messages["tool_offered"].notna().sum()),
        "tools_launched": int(messages["tool_launched"].astype(bool).sum()),
        "escalations": int(messages["escalate"].astype(bool).sum()),
        "escalation_reasons": messages["escalation_reason"].dropna().value_counts().to_dict(),
        "crisis_events": int(messages["crisis"].astype(bool).sum()),
        "modes": messages["mode"].dropna().value_counts().to_dict(),
        "anxiety": {
            "mean": round(float(df["anxiety"].mean()), 2),
            "peak": float(df["anxiety"].max()),
            "peak_phase": df.loc[df["anxiety"].idxmax(), "phase"],
            "final": float(df["anxiety"].iloc[-1]),
        },
        "minutes_by_state": {
            state: round(count * tick_seconds / 60.0, 1)
            for state, count in df["anxiety_state"].value_counts().items()
        },
    }


class Reporter:
    """Writes replay results to an output directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def save_records_csv(self, records: list[dict], filename: str = "replay.csv") -> Path:
        """Save one row per tick as CSV."""
        df = pd.DataFrame(records)
        leading = [c for c in ("elapsed_seconds", "timestamp", "phase", "event") if c in df.columns]
        df = df[leading + [c for c in df.columns if c not in leading]]
        path = self.output_dir / filename
        df.to_csv(path, index=False)
        return path

    def save_summary_json(self, summary: dict, filename: str = "summary.json") -> Path:
        """Save summary dict as JSON."""
        path = self.output_dir / filename
        with open(path, "w") as f:
            json.dump(summary, f, indent=2, default=str)
        return path

    def save_phase_table(self, records: list[dict], filename: str = "phases.md") -> Path:
        """Per-phase anxiety and intervention table in markdown."""
        df = pd.DataFrame(records)
        lines = ["# Flight Replay by Phase\n"]
        lines.append("| Phase | Ticks | Mean anxiety | Peak anxiety | Proactive | Tools offered |")
        lines.append("|-------|-------|--------------|--------------|-----------|---------------|")

        if not df.empty:
            # Phases in flight order, not alphabetical
            for phase, group in df.groupby("phase", sort=False):
                lines.append(
                    f"| {phase} | {len(group)} | {group['anxiety'].mean():.1f} | "
                    f"{group['anxiety'].max():.1f} | {int(group['proactive'].astype(bool).sum())} | "
                    f"{int(group['tool_offered'].notna().sum())} |"
                )

        path = self.output_dir / filename
        path.write_text("\n".join(lines) + "\n")
        return path
